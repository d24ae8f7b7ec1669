"""
Bookshare backend package.
"""
