"""
Core domain layer: data model, lookup paths, tree building, visibility
filtering and tree view state
"""

from .model import Binding, BindingState, DataSource, ParsedDataSource, PickerType, TreeNode
from .tree_builder import BuildContext, BuildResult, build, build_from_source
from .tree_state import TreeViewState
from .visibility import visible

__all__ = [
    "Binding",
    "BindingState",
    "BuildContext",
    "BuildResult",
    "DataSource",
    "ParsedDataSource",
    "PickerType",
    "TreeNode",
    "TreeViewState",
    "build",
    "build_from_source",
    "visible",
]
