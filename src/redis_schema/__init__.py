"""
Redis Schema - Indexed record store over Redis hashes and sets

Maps a relational-style data-access contract (create, find, update, destroy,
count and drop against typed tables with primary keys and secondary indexes)
onto a schemaless key-value store.
"""

__version__ = "0.1.0"
__author__ = "Systems Engineering Portfolio"
