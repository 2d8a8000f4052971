"""
cgplugin - signed request/response messaging between sandboxed plugins and their host page.
"""

__version__ = "0.1.0"
