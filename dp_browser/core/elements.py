"""
Helpers over the element-property graph.

The graph is a plain id -> element mapping as it arrives from the host
document (parsed JSON). An element looks like:

    {
        "id": "btn1",
        "name": "Button",
        "elementType": "Button",
        "childIds": [],
        "inputs": {"label": "Save", "disabled": False},
        "a11yInputs": {"ariaAttrs": [{"name": "aria-label", "value": "Save"}], "notes": ""},
    }
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Tuple

from dp_browser.core.model import is_data_bound_value

ElementMap = Mapping[str, Dict[str, Any]]


class ElementType:
    BOARD = "Board"
    SYMBOL = "Symbol"
    SYMBOL_INSTANCE = "SymbolInstance"
    ICON = "Icon"
    GENERIC = "Generic"


class LayerIcon:
    HOME = "home"
    BOARD = "dashboard"
    COMPONENT = "widgets"
    ICON = "insert_emoticon"
    FOLDER = "folder"
    GENERIC_ELEMENT = "crop_square"


# Icons of the built-in primitives, keyed by elementType
COMPONENT_ICONS: Dict[str, str] = {
    "Button": "smart_button",
    "Text": "text_fields",
    "Image": "image",
    "Input": "input",
    "Checkbox": "check_box",
    "RadioButton": "radio_button_checked",
    "Select": "arrow_drop_down_circle",
    "Table": "table_chart",
    "Tabs": "tab",
    "Stepper": "linear_scale",
    "ExpansionPanel": "expand",
    "Video": "videocam",
    "Iframe": "web_asset",
}

# Inputs that are never offered for binding
EXCLUDED_INPUTS = frozenset({"hidden", "matRipple", "referenceId", "richText"})
EXCLUDED_PREFIX = "_"


def element_type(element: Mapping[str, Any]) -> str:
    return str(element.get("elementType") or "")


def child_ids(element: Mapping[str, Any]) -> List[str]:
    return list(element.get("childIds") or [])


def is_board(element: Mapping[str, Any]) -> bool:
    return element_type(element) == ElementType.BOARD


def is_symbol(element: Mapping[str, Any]) -> bool:
    return element_type(element) in (ElementType.SYMBOL, ElementType.SYMBOL_INSTANCE)


def is_root(element: Mapping[str, Any]) -> bool:
    """Boards and symbol definitions are top-level items of a document"""
    return element_type(element) in (ElementType.BOARD, ElementType.SYMBOL)


def boards(elements: ElementMap) -> List[Dict[str, Any]]:
    return [e for e in elements.values() if isinstance(e, dict) and is_board(e)]


def root_elements(elements: ElementMap) -> List[Dict[str, Any]]:
    return [e for e in elements.values() if isinstance(e, dict) and is_root(e)]


def valid_inputs(inputs: Mapping[str, Any] | None) -> List[Tuple[str, Any]]:
    """
    Inputs that may be offered for binding: no private ("_") keys, no
    excluded keys and nothing that is already bound to another value.
    """
    if not inputs:
        return []
    return [
        (key, value)
        for key, value in inputs.items()
        if not key.startswith(EXCLUDED_PREFIX)
        and key not in EXCLUDED_INPUTS
        and not is_data_bound_value(value)
    ]


def has_a11y_info(element: Mapping[str, Any]) -> bool:
    a11y = element.get("a11yInputs") or {}
    attrs = [a for a in (a11y.get("ariaAttrs") or []) if isinstance(a, dict) and a.get("value")]
    return bool(attrs or a11y.get("notes"))


def icon_for_element(element: Mapping[str, Any], home_board_id: str = "") -> str:
    if home_board_id and home_board_id == element.get("id"):
        return LayerIcon.HOME
    kind = element_type(element)
    if kind == ElementType.ICON:
        return LayerIcon.ICON
    if kind == ElementType.BOARD:
        return LayerIcon.BOARD
    if is_symbol(element):
        return LayerIcon.COMPONENT
    if kind != ElementType.GENERIC and kind in COMPONENT_ICONS:
        return COMPONENT_ICONS[kind]
    return LayerIcon.FOLDER if child_ids(element) else LayerIcon.GENERIC_ELEMENT
