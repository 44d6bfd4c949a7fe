"""
Schema Model Classes - Represent tables, columns and relationships
"""
from dataclasses import dataclass, field
from typing import List, Optional, Dict, Any


ONE_TO_ONE = 'one-to-one'
ONE_TO_MANY = 'one-to-many'
MANY_TO_ONE = 'many-to-one'
MANY_TO_MANY = 'many-to-many'

CARDINALITIES = (ONE_TO_ONE, ONE_TO_MANY, MANY_TO_ONE, MANY_TO_MANY)


@dataclass
class Column:
    """Represents a column of a table."""
    name: str
    type: str
    is_primary_key: bool = False
    is_foreign_key: bool = False
    is_not_null: bool = False
    note: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Converts the column to the interchange dictionary."""
        data = {
            "name": self.name,
            "type": self.type,
            "isPrimaryKey": self.is_primary_key,
            "isForeignKey": self.is_foreign_key,
            "isNotNull": self.is_not_null,
        }
        if self.note is not None:
            data["note"] = self.note
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Column':
        return cls(
            name=data["name"],
            type=data.get("type", ""),
            is_primary_key=bool(data.get("isPrimaryKey", False)),
            is_foreign_key=bool(data.get("isForeignKey", False)),
            is_not_null=bool(data.get("isNotNull", False)),
            note=data.get("note"),
        )


@dataclass
class Table:
    """Represents a table with its ordered columns"""
    name: str
    columns: List[Column] = field(default_factory=list)

    def get_column(self, name: str) -> Optional[Column]:
        for column in self.columns:
            if column.name == name:
                return column
        return None

    @property
    def primary_keys(self) -> List[str]:
        return [c.name for c in self.columns if c.is_primary_key]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "columns": [c.to_dict() for c in self.columns],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Table':
        return cls(
            name=data["name"],
            columns=[Column.from_dict(c) for c in data.get("columns", [])],
        )


@dataclass
class Relationship:
    """Represents a reference from one column to another"""
    from_table: str
    from_column: str
    to_table: str
    to_column: str
    cardinality: str = ONE_TO_MANY

    @property
    def endpoints(self) -> tuple:
        return (self.from_table, self.from_column, self.to_table, self.to_column)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "from": {"table": self.from_table, "column": self.from_column},
            "to": {"table": self.to_table, "column": self.to_column},
            "type": self.cardinality,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Relationship':
        return cls(
            from_table=data["from"]["table"],
            from_column=data["from"]["column"],
            to_table=data["to"]["table"],
            to_column=data["to"]["column"],
            cardinality=data.get("type", ONE_TO_MANY),
        )

    def __repr__(self):
        return (f"Relationship({self.from_table}.{self.from_column} -> "
                f"{self.to_table}.{self.to_column}, type={self.cardinality})")


@dataclass
class ParsedSchema:
    """
    Intermediate representation shared by the parser, the importers,
    the generators and the diagram synchronizer.

    Rebuilt from scratch on every text change and never mutated afterwards.
    """
    tables: List[Table] = field(default_factory=list)
    relationships: List[Relationship] = field(default_factory=list)

    def get_table(self, name: str) -> Optional[Table]:
        """First table with the given name (duplicates are kept in order)."""
        for table in self.tables:
            if table.name == name:
                return table
        return None

    def mark_foreign_keys(self):
        """Flag the "from" column of every relationship when it exists."""
        for rel in self.relationships:
            table = self.get_table(rel.from_table)
            if table is None:
                continue
            column = table.get_column(rel.from_column)
            if column is not None:
                column.is_foreign_key = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tables": [t.to_dict() for t in self.tables],
            "relationships": [r.to_dict() for r in self.relationships],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ParsedSchema':
        return cls(
            tables=[Table.from_dict(t) for t in data.get("tables", [])],
            relationships=[Relationship.from_dict(r) for r in data.get("relationships", [])],
        )
