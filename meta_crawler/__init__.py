"""
Concurrent page-metadata crawler that groups results per category.
"""
