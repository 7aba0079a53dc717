"""
Store class for the three-state category lifecycle.

    active <-> deprecated     (delete_category / activate_category)
    active  -> deleted        (delete_category, only while unreferenced)
    deprecated -> deleted     (delete_category, only while unreferenced)

A category that backs at least one document can be hidden but never removed.
"""

from dataclasses import dataclass

from sqlalchemy import insert, select, update
from sqlalchemy.orm import sessionmaker

from doctrack.core.logger import doctrack_logger as logger
from doctrack.storage.category import Category
from doctrack.storage.document import Document
from doctrack.storage.records import (
    CategoryInfo,
    DeletedCategory,
    parse_row,
    parse_rows,
)
from doctrack.storage.unit_of_work import unit_of_work


@dataclass
class CategoryStore:
    session_maker: sessionmaker

    def create_category(self, name: str) -> int:
        """Create an active category and return its ID."""
        with unit_of_work(self.session_maker, operation='create_category') as session:
            category_id = session.execute(
                insert(Category)
                .values(name=name, state=Category.STATE_ACTIVE)
                .returning(Category.id)
            ).scalar_one()
        logger.info(
            'Created category',
            extra={'category': category_id, 'category_name': name},
        )
        return category_id

    def activate_category(self, category_id: int) -> str | None:
        """Bring a deprecated category back into use.

        Activating an already active category is a no-op.

        Returns:
            The category name, or None if it is deleted or does not exist
        """
        with unit_of_work(
            self.session_maker, operation='activate_category'
        ) as session:
            name = session.execute(
                update(Category)
                .where(
                    Category.id == category_id,
                    Category.state != Category.STATE_DELETED,
                )
                .values(state=Category.STATE_ACTIVE)
                .returning(Category.name)
            ).scalar_one_or_none()
        if name is not None:
            logger.info('Activated category', extra={'category': category_id})
        return name

    def rename_category(self, category_id: int, name: str) -> bool:
        """Rename a category that is not deleted."""
        with unit_of_work(self.session_maker, operation='rename_category') as session:
            result = session.execute(
                update(Category)
                .where(
                    Category.id == category_id,
                    Category.state != Category.STATE_DELETED,
                )
                .values(name=name)
            )
            return result.rowcount > 0

    def get_active_categories(self) -> list[CategoryInfo]:
        with unit_of_work(
            self.session_maker, operation='get_active_categories'
        ) as session:
            rows = (
                session.execute(
                    select(Category.id, Category.name)
                    .where(Category.state == Category.STATE_ACTIVE)
                    .order_by(Category.id)
                )
                .mappings()
                .all()
            )
            return parse_rows(CategoryInfo, rows)

    def delete_category(self, category_id: int) -> DeletedCategory | None:
        """Delete a category, or deprecate it while documents still use it.

        Returns:
            ``DeletedCategory(deleted=True)`` if the category is gone for good,
            ``DeletedCategory(deleted=False)`` if it was only deprecated, or
            None if it does not exist or was already deleted
        """
        with unit_of_work(
            self.session_maker, serializable=True, operation='delete_category'
        ) as session:
            row = (
                session.execute(
                    select(Category.name).where(
                        Category.id == category_id,
                        Category.state != Category.STATE_DELETED,
                    )
                )
                .mappings()
                .first()
            )
            if row is None:
                return None

            referenced = session.execute(
                select(Document.id).where(Document.category == category_id).limit(1)
            ).first()
            state = (
                Category.STATE_DEPRECATED
                if referenced is not None
                else Category.STATE_DELETED
            )
            session.execute(
                update(Category).where(Category.id == category_id).values(state=state)
            )
            result = parse_row(
                DeletedCategory,
                {'name': row['name'], 'deleted': state == Category.STATE_DELETED},
            )

        logger.info(
            'Deleted category' if result.deleted else 'Deprecated category',
            extra={'category': category_id},
        )
        return result
