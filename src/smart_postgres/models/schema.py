"""Database schema models produced by introspection."""

from datetime import datetime

from pydantic import Field

from smart_postgres.models.base import CamelModel


class Column(CamelModel):
    """A table column."""

    name: str = Field(..., description="Column name")
    type: str = Field(..., description="Underlying type name (udt_name)")
    nullable: bool = Field(default=True, description="Whether the column accepts NULL")
    default: str | None = Field(default=None, description="Column default expression")
    is_primary: bool = Field(default=False, description="Whether the column is part of the primary key")
    description: str | None = Field(default=None, description="Column comment")


class ForeignKey(CamelModel):
    """A foreign key from one column to another table."""

    column: str
    referenced_table: str
    referenced_column: str
    on_delete: str | None = None
    on_update: str | None = None


class Index(CamelModel):
    """A table index."""

    name: str
    is_unique: bool = False
    is_primary: bool = False
    definition: str = ""
    is_valid: bool = True
    index_type: str | None = None


class Constraint(CamelModel):
    """A CHECK or UNIQUE constraint."""

    name: str
    type: str
    definition: str | None = None


class TableStatistics(CamelModel):
    """Planner and maintenance statistics for a table."""

    total_rows: int = 0
    size_in_bytes: int = 0
    last_vacuum: datetime | None = None
    last_auto_vacuum: datetime | None = None
    last_analyze: datetime | None = None
    last_auto_analyze: datetime | None = None
    modifications_since_analyze: int | None = None


class Table(CamelModel):
    """A base table in the public schema."""

    name: str
    columns: list[Column] = Field(default_factory=list)
    foreign_keys: list[ForeignKey] = Field(default_factory=list)
    indexes: list[Index] = Field(default_factory=list)
    constraints: list[Constraint] = Field(default_factory=list)
    statistics: TableStatistics | None = None

    def to_prompt_text(self) -> str:
        """Render the table the way prompts expect it."""
        columns = ", ".join(f"{col.name} ({col.type})" for col in self.columns)
        return f"Table: {self.name}\nColumns: {columns}\n"

    def get_column(self, name: str) -> Column | None:
        """Find a column by case-insensitive name."""
        lowered = name.lower()
        for col in self.columns:
            if col.name.lower() == lowered:
                return col
        return None


class DatabaseSchema(CamelModel):
    """All introspected tables, in catalog order."""

    tables: list[Table] = Field(default_factory=list)

    def to_prompt_text(self) -> str:
        """Render every table for inclusion in an LLM prompt."""
        return "\n".join(table.to_prompt_text() for table in self.tables)

    def table_names(self) -> list[str]:
        """Names of all tables."""
        return [table.name for table in self.tables]
