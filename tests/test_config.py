from config import DEFAULT_AUTO_EXTRACT_FIELDS, Settings, _split_fields


def test_split_fields_trims_and_drops_blanks():
    assert _split_fields(' documentGuid, ,setGuid ') == ('documentGuid', 'setGuid')


def test_split_fields_empty():
    assert _split_fields('') == ()


def test_default_keyword_selects_label_fields():
    assert _split_fields('Default') == DEFAULT_AUTO_EXTRACT_FIELDS


def test_settings_types():
    assert isinstance(Settings.STEP_TIMEOUT_SECONDS, float)
    assert isinstance(Settings.FAILURE_STATUS_THRESHOLD, int)
    assert isinstance(Settings.AUTO_EXTRACT_FIELDS, tuple)
