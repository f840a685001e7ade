"""Document model mapped imperatively onto SQLite for adapter and integration tests."""

from __future__ import annotations

from dataclasses import dataclass, field
from functools import cache
from typing import TYPE_CHECKING

from sqlalchemy import Column, ForeignKey, Integer, String, Table, orm
from sqlalchemy.orm import relationship

from relstage.domain.builder import RelationBuilder, registry_for
from relstage.domain.errors import RelationConfigError

if TYPE_CHECKING:
    from relstage.domain.builder import RelationRegistry

mapper_registry = orm.registry()
metadata = mapper_registry.metadata


@dataclass(eq=False, kw_only=True)
class Category:
    title: str = ""
    id: int | None = field(default=None, init=False)
    documents: list[Document] = field(default_factory=list["Document"])

    def validate(self) -> list[str]:
        return [] if self.title.strip() else ["Title can't be blank"]


@dataclass(eq=False, kw_only=True)
class Tag:
    title: str = ""
    id: int | None = field(default=None, init=False)
    documents: list[Document] = field(default_factory=list["Document"])

    def validate(self) -> list[str]:
        return [] if self.title.strip() else ["Title can't be blank"]


@dataclass(eq=False, kw_only=True)
class Attachment:
    title: str | None = None
    caption: str | None = None
    document_id: int | None = None
    id: int | None = field(default=None, init=False)


@dataclass(eq=False, kw_only=True)
class Badge:
    title: str | None = None
    document_id: int | None = None
    id: int | None = field(default=None, init=False)


@dataclass(eq=False, kw_only=True)
class MysteryMeat:
    meat: str | None = None
    document_id: int | None = None
    id: int | None = field(default=None, init=False)


@dataclass(eq=False, kw_only=True)
class Document:
    title: str = ""
    id: int | None = field(default=None, init=False)
    categories: list[Category] = field(default_factory=list["Category"])
    tags: list[Tag] = field(default_factory=list["Tag"])
    attachments: list[Attachment] = field(default_factory=list["Attachment"])
    badges: list[Badge] = field(default_factory=list["Badge"])
    mystery_meats: list[MysteryMeat] = field(default_factory=list["MysteryMeat"])

    def validate(self) -> list[str]:
        return [] if self.title.strip() else ["Title can't be blank"]


document_table = Table(
    "documents",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("title", String, nullable=True),
)

category_table = Table(
    "categories",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("title", String, nullable=True),
)

categorization_table = Table(
    "categorizations",
    metadata,
    Column("document_id", Integer, ForeignKey("documents.id"), primary_key=True),
    Column("category_id", Integer, ForeignKey("categories.id"), primary_key=True),
)

tag_table = Table(
    "tags",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("title", String, nullable=True),
)

tagging_table = Table(
    "taggings",
    metadata,
    Column("document_id", Integer, ForeignKey("documents.id"), primary_key=True),
    Column("tag_id", Integer, ForeignKey("tags.id"), primary_key=True),
)

attachment_table = Table(
    "attachments",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("document_id", Integer, ForeignKey("documents.id"), nullable=True),
    Column("title", String, nullable=True),
    Column("caption", String, nullable=True),
)

badge_table = Table(
    "badges",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("document_id", Integer, ForeignKey("documents.id"), nullable=True),
    Column("title", String, nullable=True),
)

mystery_meat_table = Table(
    "mystery_meats",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("document_id", Integer, ForeignKey("documents.id"), nullable=True),
    Column("meat", String, nullable=True),
)


@cache
def start_mappers() -> orm.registry:
    """Map the document model; safe to call repeatedly."""

    mapper_registry.map_imperatively(
        Document,
        document_table,
        properties={
            "categories": relationship(
                Category, secondary=categorization_table, back_populates="documents"
            ),
            "tags": relationship(Tag, secondary=tagging_table, back_populates="documents"),
            "attachments": relationship(Attachment),
            "badges": relationship(Badge),
            "mystery_meats": relationship(MysteryMeat),
        },
    )
    mapper_registry.map_imperatively(
        Category,
        category_table,
        properties={
            "documents": relationship(
                Document, secondary=categorization_table, back_populates="categories"
            ),
        },
    )
    mapper_registry.map_imperatively(
        Tag,
        tag_table,
        properties={
            "documents": relationship(Document, secondary=tagging_table, back_populates="tags"),
        },
    )
    mapper_registry.map_imperatively(Attachment, attachment_table)
    mapper_registry.map_imperatively(Badge, badge_table)
    mapper_registry.map_imperatively(MysteryMeat, mystery_meat_table)
    orm.configure_mappers()
    return mapper_registry


def caption_from_document(document: Document, attachment: Attachment) -> None:
    attachment.caption = f"Attached to {document.title or 'an unsaved document'}"


@cache
def document_relations() -> RelationRegistry:
    """Register the document's relations once per test session."""

    try:
        return registry_for(Document)
    except RelationConfigError:
        return (
            RelationBuilder(Document)
            .by_ids("categories", "badges")
            .by_string(tags="title", mystery_meats="meat")
            .by_force("attachments")
            .before_create("attachments", caption_from_document)
            .build()
        )
