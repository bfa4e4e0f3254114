from dataclasses import dataclass


def quote_id(name: str) -> str:
    "Escapes the closing delimiter of a bracket-quoted identifier."

    return name.replace("]", "]]")


def quote(value: str) -> str:
    "Quotes a string to be embedded in a SQL statement as a string literal."

    return "'" + value.replace("'", "''") + "'"


@dataclass(frozen=True)
class LocalId:
    id: str

    @property
    def local_id(self) -> str:
        "Unquoted identifier."

        return self.id

    @property
    def quoted_id(self) -> str:
        return "[" + quote_id(self.id) + "]"

    def __str__(self) -> str:
        "Quotes an identifier to be embedded in a T-SQL statement."

        return self.quoted_id


@dataclass(frozen=True)
class ParameterId:
    id: str

    @property
    def local_id(self) -> str:
        "Parameter name without the `@` prefix."

        return self.id

    @property
    def quoted_id(self) -> str:
        return "@" + self.id

    def __str__(self) -> str:
        "Prefixes a parameter name to be embedded in a T-SQL statement."

        return self.quoted_id
