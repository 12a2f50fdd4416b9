"""
Vendor check crawler.
Drives a disguised browser session across registry and sanctions-list
targets for a named business and captures evidence of each lookup.
"""

__version__ = "1.9.0"
