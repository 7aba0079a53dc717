"""
Store class for managing offices.
"""

from dataclasses import dataclass

from sqlalchemy import insert, select, update
from sqlalchemy.orm import sessionmaker

from doctrack.core.logger import doctrack_logger as logger
from doctrack.storage.office import Office
from doctrack.storage.unit_of_work import unit_of_work


@dataclass
class OfficeStore:
    session_maker: sessionmaker

    def create_office(self, name: str) -> int:
        """Add a new office and return its ID."""
        with unit_of_work(self.session_maker, operation='create_office') as session:
            office_id = session.execute(
                insert(Office).values(name=name).returning(Office.id)
            ).scalar_one()
        logger.info(
            'Created office', extra={'office': office_id, 'office_name': name}
        )
        return office_id

    def rename_office(self, office_id: int, name: str) -> bool:
        """Rename an office. Returns False if it does not exist."""
        with unit_of_work(self.session_maker, operation='rename_office') as session:
            result = session.execute(
                update(Office).where(Office.id == office_id).values(name=name)
            )
            renamed = result.rowcount > 0
        if renamed:
            logger.info(
                'Renamed office', extra={'office': office_id, 'office_name': name}
            )
        return renamed

    def get_office_name(self, office_id: int) -> str | None:
        with unit_of_work(self.session_maker, operation='get_office_name') as session:
            return session.execute(
                select(Office.name).where(Office.id == office_id)
            ).scalar_one_or_none()
