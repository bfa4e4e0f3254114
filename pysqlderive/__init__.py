"""
pysqlderive: Derive a relational schema and SQL Server artifacts from an object model.

This library turns an object model of classes, properties and associations into a normalized relational schema
with tables, columns and keys, and emits SQL Server DDL, user-defined table types and stored procedures.
"""

import logging

__version__ = "0.1.0"
__author__ = "Levente Hunyadi"
__copyright__ = "Copyright 2023-2025, Levente Hunyadi"
__license__ = "MIT"
__maintainer__ = "Levente Hunyadi"
__status__ = "Beta"

logging.getLogger(__name__).addHandler(logging.NullHandler())
