"""
Rehla Trees field client.

Scans tree QR labels, resolves their serial numbers and registers planted
trees in the tree CMS.
"""

__version__ = "1.0.0"
