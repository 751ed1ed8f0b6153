"""Project tree scanning for erp-conformance."""

from scan.files import ScanError, TreeNode, scan_tree

__all__ = ["ScanError", "TreeNode", "scan_tree"]
