"""
Helpers for moving values between plan steps: {{variable}} substitution,
deep field search and path extraction over decoded JSON bodies.
"""

import json
import logging
import re
from typing import Any, Dict, Iterable, List, Optional, Tuple

from exceptions import MissingVariableError

logger = logging.getLogger(__name__)

TEMPLATE_PATTERN = re.compile(r'\{\{\s*(\w+)\s*\}\}')
PATH_SEPARATORS = re.compile(r'[.\[\]]')
DEFAULT_MAX_DEPTH = 10


# --- TEMPLATE RESOLUTION ---

def find_template_variables(template: Any) -> List[str]:
    """Return the placeholder names used in a template, in order of appearance."""
    if not isinstance(template, str):
        return []
    return TEMPLATE_PATTERN.findall(template)


def lookup_variable(variables: Dict[str, Any], name: str) -> Optional[Any]:
    """Exact match first, then a case-insensitive one (documentGuid vs DocumentGUID)."""
    if name in variables:
        return variables[name]
    lower_name = name.lower()
    for key, value in variables.items():
        if key.lower() == lower_name:
            logger.debug("Case-insensitive variable match: '%s' -> '%s'", name, key)
            return value
    return None


def stringify_value(value: Any) -> str:
    """String form of a context value as it appears inside a path or query string."""
    if isinstance(value, bool):
        return 'true' if value else 'false'
    if isinstance(value, (list, tuple)):
        return ','.join(stringify_value(item) for item in value)
    if isinstance(value, dict):
        return json.dumps(value, separators=(',', ':'))
    return str(value)


def _substitute(template: str, variables: Dict[str, Any], missing: List[str]) -> str:
    def replace(match):
        name = match.group(1)
        value = lookup_variable(variables, name)
        if value is None:
            if name not in missing:
                missing.append(name)
            return match.group(0)
        return stringify_value(value)

    return TEMPLATE_PATTERN.sub(replace, template)


def substitute_variables(template: str, variables: Dict[str, Any]) -> str:
    '''
    Replace every {{name}} in template with the string form of variables[name].
    Raises MissingVariableError listing every name that has no value.
    '''
    if not isinstance(template, str):
        return template
    missing: List[str] = []
    result = _substitute(template, variables, missing)
    if missing:
        raise MissingVariableError(missing)
    return result


def resolve_step_templates(path: str, query_parameters: Dict[str, Any],
                           variables: Dict[str, Any]) -> Tuple[str, Dict[str, Any]]:
    '''
    Resolve placeholders in a step's path and query parameters in one pass so
    that the error names every unresolved variable, not only the first.

    A query value that is exactly one placeholder keeps the variable's own
    type (an int stays an int); anything else is substituted as text.
    '''
    missing: List[str] = []
    resolved_path = _substitute(path, variables, missing)

    resolved_params = {}
    for key, value in (query_parameters or {}).items():
        if not isinstance(value, str):
            resolved_params[key] = value
            continue
        whole = TEMPLATE_PATTERN.fullmatch(value.strip())
        if whole:
            native = lookup_variable(variables, whole.group(1))
            if native is not None and not isinstance(native, (dict, list, tuple)):
                resolved_params[key] = native
                continue
        resolved_params[key] = _substitute(value, variables, missing)

    if missing:
        raise MissingVariableError(missing)
    if resolved_path != path:
        logger.debug("Resolved path '%s' -> '%s'", path, resolved_path)
    return resolved_path, resolved_params


def find_array_variable(path: str, variables: Dict[str, Any]) -> Optional[Tuple[str, list]]:
    """
    First placeholder in path whose value is a list of more than one element.
    Such a path is dispatched once per element.
    """
    for name in find_template_variables(path):
        value = lookup_variable(variables, name)
        if isinstance(value, (list, tuple)) and len(value) > 1:
            return name, list(value)
    return None


# --- OUTPUT EXTRACTION ---

def get_case_insensitive_property(obj: Any, name: str) -> Optional[Any]:
    if not isinstance(obj, dict):
        return None
    if name in obj:
        return obj[name]
    lower_name = name.lower()
    for key, value in obj.items():
        if key.lower() == lower_name:
            return value
    return None


def find_property_deep(obj: Any, name: str, max_depth: int = DEFAULT_MAX_DEPTH,
                       current_depth: int = 0, current_path: str = '$') -> Optional[Any]:
    '''
    Depth-first search for a property anywhere in obj, matching names
    case-insensitively. Direct keys of an object are checked before its
    children are searched, and the first non-null match wins.
    '''
    if current_depth > max_depth:
        return None

    if isinstance(obj, list):
        for position, item in enumerate(obj):
            found = find_property_deep(item, name, max_depth, current_depth + 1,
                                       f'{current_path}[{position}]')
            if found is not None:
                return found
        return None

    if not isinstance(obj, dict):
        return None

    lower_name = name.lower()
    for key, value in obj.items():
        if key.lower() == lower_name and value is not None:
            logger.debug("Deep search: found '%s' at '%s.%s'", name, current_path, key)
            return value

    for key, value in obj.items():
        if isinstance(value, (dict, list)):
            found = find_property_deep(value, name, max_depth, current_depth + 1,
                                       f'{current_path}.{key}')
            if found is not None:
                return found
    return None


def find_nested_arrays(obj: Any, max_depth: int = 5, current_depth: int = 0) -> list:
    """Concatenate every non-empty array found under obj (e.g. productsByClass groups)."""
    if current_depth > max_depth or not isinstance(obj, (dict, list)):
        return []
    if isinstance(obj, list):
        return obj

    found = []
    for value in obj.values():
        if isinstance(value, list) and value:
            found.extend(value)
        elif isinstance(value, dict):
            found.extend(find_nested_arrays(value, max_depth, current_depth + 1))
    return found


def extract_single_value(data: Any, path: str, max_depth: int = DEFAULT_MAX_DEPTH) -> Optional[Any]:
    '''
    Walk a path such as "$[0].documentGUID", "$.results.setGuid" or "productName".
    Integer parts index lists; name parts match at the current level first
    and fall back to a deep search below it.
    '''
    if data is None or not path:
        return None

    clean_path = path[1:] if path.startswith('$') else path
    parts = [part for part in PATH_SEPARATORS.split(clean_path) if part]

    current = data
    for part in parts:
        if current is None:
            return None
        if part.isdigit():
            position = int(part)
            if not isinstance(current, list) or position >= len(current):
                logger.debug("Index [%d] out of range while extracting '%s'", position, path)
                return None
            current = current[position]
            continue

        value = get_case_insensitive_property(current, part)
        if value is None:
            value = find_property_deep(current, part, max_depth)
        if value is None:
            logger.debug("Property '%s' not found while extracting '%s'", part, path)
            return None
        current = value

    return current


def _dedupe_key(value: Any) -> str:
    return json.dumps(value, sort_keys=True, default=str)


def extract_value_by_path(data: Any, path: str, max_depth: int = DEFAULT_MAX_DEPTH) -> Optional[Any]:
    '''
    Extract one value, or with a trailing "[]" every distinct value of the
    field across the elements of the body's array(s).

    "documentGUID[]" against [{documentGUID: a}, {documentGUID: b}, {documentGUID: a}]
    gives [a, b]; an object body is searched for nested arrays first.
    '''
    if data is None or not path:
        return None

    if not path.endswith('[]'):
        return extract_single_value(data, path, max_depth)

    field_path = path[:-2]
    elements = data if isinstance(data, list) else find_nested_arrays(data)
    seen = set()
    values = []
    for element in elements:
        value = extract_single_value(element, field_path, max_depth)
        if value is None:
            continue
        key = _dedupe_key(value)
        if key not in seen:
            seen.add(key)
            values.append(value)
    logger.debug("Array extraction '%s': %d unique value(s) from %d element(s)",
                 path, len(values), len(elements))
    return values or None


def normalize_field_name(name: str) -> str:
    """documentGUID -> documentGuid, encryptedID -> encryptedId"""
    return re.sub(r'ID$', 'Id', re.sub(r'GUID$', 'Guid', name))


def auto_extract_fields(data: Any, fields: Iterable[str], max_depth: int = DEFAULT_MAX_DEPTH) -> Dict[str, Any]:
    """Deep search for each field, keyed by its normalized name; the first spelling found wins."""
    extracted: Dict[str, Any] = {}
    seen = set()
    for name in fields:
        normalized = normalize_field_name(name)
        if normalized.lower() in seen:
            continue
        value = find_property_deep(data, name, max_depth)
        if value is not None:
            extracted[normalized] = value
            seen.add(normalized.lower())
    return extracted


def result_has_data(body: Any) -> bool:
    """A fallback step only runs when the step it watches came back empty."""
    if body is None:
        return False
    if isinstance(body, (list, tuple, dict)):
        return len(body) > 0
    if isinstance(body, str):
        return body.strip() != ''
    return True


def merge_bodies(bodies: Iterable[Any]) -> list:
    """Concatenate the bodies of expanded calls, flattening list bodies."""
    merged = []
    for body in bodies:
        if isinstance(body, list):
            merged.extend(body)
        elif body is not None:
            merged.append(body)
    return merged
