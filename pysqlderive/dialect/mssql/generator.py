import logging
from dataclasses import dataclass
from typing import Optional

from pysqlderive.model.id_types import LocalId, quote

from .object_types import MSSQLDatabase

LOGGER = logging.getLogger("pysqlderive")

# separates batches of Transact-SQL statements in scripts executed with `sqlcmd` or SQL Server Management Studio
BATCH_SEPARATOR = "GO"


@dataclass
class GeneratorOptions:
    """
    Options for generating Transact-SQL scripts.

    :param keep_if_exists: Leave existing objects in place instead of dropping them first.
    :param include_procedures: Emit stored procedures.
    :param include_table_types: Emit user-defined table types.
    """

    keep_if_exists: bool = False
    include_procedures: bool = True
    include_table_types: bool = True


class MSSQLGenerator:
    """
    Generator for Microsoft SQL Server (T-SQL) scripts.

    Statements that must be the first in a batch (e.g. `CREATE PROCEDURE`) are put in a separate batch.
    """

    options: GeneratorOptions

    def __init__(self, options: Optional[GeneratorOptions] = None) -> None:
        self.options = options if options is not None else GeneratorOptions()

    def get_database_stmt(self, name: str) -> str:
        "Returns a script that (re-)creates an empty database."

        batches: list[str] = ["USE master;"]
        if not self.options.keep_if_exists:
            batches.append(
                f"IF EXISTS (SELECT * FROM sys.databases WHERE name = {quote(name)}) DROP DATABASE {LocalId(name)};"
            )
            batches.append(f"CREATE DATABASE {LocalId(name)};")
        else:
            batches.append(
                f"IF NOT EXISTS (SELECT * FROM sys.databases WHERE name = {quote(name)}) CREATE DATABASE {LocalId(name)};"
            )
        batches.append(f"USE {LocalId(name)};")
        return join_batches(batches)

    def get_drop_stmt(self, database: MSSQLDatabase) -> Optional[str]:
        """
        Returns a script that drops stored procedures, tables and table types.

        Tables are dropped in reverse dependency order such that no table is dropped while another table references it.
        """

        statements: list[str] = []
        if self.options.include_procedures:
            statements.extend(
                p.drop_if_exists_stmt() for p in reversed(database.stored_procedures)
            )
        statements.extend(t.drop_if_exists_stmt() for t in reversed(database.tables))
        if self.options.include_table_types:
            statements.extend(
                t.drop_type_if_exists_stmt() for t in reversed(database.table_types)
            )

        if not statements:
            return None
        return "\n".join(statements)

    def get_create_stmt(self, database: MSSQLDatabase) -> list[str]:
        "Returns batches that create table types, tables in dependency order, and stored procedures."

        batches: list[str] = []

        statements: list[str] = []
        if self.options.include_table_types:
            statements.extend(t.create_type_stmt() for t in database.table_types)
        statements.extend(t.create_stmt() for t in database.tables)
        if statements:
            batches.append("\n".join(statements))

        if self.options.include_procedures:
            # `CREATE PROCEDURE` must be the only statement in a batch
            batches.extend(p.create_stmt() for p in database.stored_procedures)

        return batches

    def get_schema_stmt(self, database: MSSQLDatabase) -> Optional[str]:
        "Returns a script that creates all objects of a database, dropping existing objects first."

        batches: list[str] = []
        if not self.options.keep_if_exists:
            drop = self.get_drop_stmt(database)
            if drop is not None:
                batches.append(drop)
        batches.extend(self.get_create_stmt(database))

        if not batches:
            LOGGER.warning("no objects to create")
            return None

        LOGGER.debug(
            "generated script with %d table(s), %d table type(s) and %d stored procedure(s)",
            len(database.tables),
            len(database.table_types),
            len(database.stored_procedures),
        )
        return join_batches(batches)


def join_batches(batches: list[str]) -> str:
    "Joins batches of statements with the batch separator."

    return f"\n{BATCH_SEPARATOR}\n".join(batches) + f"\n{BATCH_SEPARATOR}\n"
