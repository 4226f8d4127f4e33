"""
Support SDK CLI

Command-line interface for the support SDK HTTP client.

Usage:
    python -m support_cli get "https://api.example.com/search" -d q=keyword
    python -m support_cli post "https://api.example.com/login" -d username=john --json-body
    python -m support_cli purge "https://cache.example.com/page" --host www.example.com
"""

__version__ = "0.1.0"
