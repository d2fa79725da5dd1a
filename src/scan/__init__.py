"""Source scanning for layerguard."""

from scan.cache import ScanCache
from scan.files import find_source_files
from scan.scanner import ScanResult, scan_project

__all__ = ["ScanCache", "ScanResult", "find_source_files", "scan_project"]
