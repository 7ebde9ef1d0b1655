"""User-facing operations: install, uninstall, list and show."""

from augent.operations.install import InstallReport, install
from augent.operations.listing import BundleDetails, BundleSummary, list_bundles, show_bundle
from augent.operations.uninstall import UninstallReport, uninstall

__all__ = [
    "BundleDetails",
    "BundleSummary",
    "InstallReport",
    "UninstallReport",
    "install",
    "list_bundles",
    "show_bundle",
    "uninstall",
]
