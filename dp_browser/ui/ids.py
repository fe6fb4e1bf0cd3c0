from __future__ import annotations

__all__ = ["IDs", "tree_caret_id", "tree_node_id"]


class IDs:
    class Store:
        TREE_STATE = "tree-state"
        BINDING = "binding"
        DATA_VERSION = "data-version"

    class Control:
        # Source navigation
        SOURCE_SELECT = "source-select"
        SOURCE_SUMMARY = "source-summary"

        # Tree
        SEARCH_INPUT = "tree-search-input"
        TREE_LIST = "tree-list"
        TREE_EMPTY = "tree-empty"

        # Selected binding
        BINDING_PATH = "binding-path"
        BINDING_VALUE = "binding-value"
        BINDING_STATUS = "binding-status"
        CLEAR_BINDING_BTN = "clear-binding-btn"

        # JSON editor
        EDITOR_TEXT = "editor-text"
        EDITOR_COMMIT_BTN = "editor-commit-btn"
        EDITOR_STATUS = "editor-status"

        # Upload a new dataset
        UPLOAD = "dataset-upload"
        UPLOAD_STATUS = "dataset-upload-status"

    class Pattern:
        # pattern-matching "type" strings
        TREE_NODE = "tree-node"
        TREE_CARET = "tree-caret"


def tree_node_id(node_id: str) -> dict:
    return {"type": IDs.Pattern.TREE_NODE, "index": node_id}


def tree_caret_id(node_id: str) -> dict:
    return {"type": IDs.Pattern.TREE_CARET, "index": node_id}
