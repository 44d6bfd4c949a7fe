"""
DBML Canvas - schema text and diagram kept in sync, with SQL/JSON import and export
"""
__version__ = '1.0.0'
