"""
Configuration partagée pour les tests.

Le mapping ORM est démarré une seule fois pour toute la session de tests.
Cela permet aux tests d'intégration et e2e d'utiliser SQLAlchemy
sans interférer avec les tests unitaires.
"""

from decimal import Decimal

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from inventory.adapters import orm


@pytest.fixture(scope="session", autouse=True)
def mappers():
    """Démarre le mapping ORM une fois pour toute la session."""
    orm.start_mappers()


@pytest.fixture
def sqlite_session_factory(tmp_path):
    """
    Base SQLite dans un fichier temporaire.

    Un fichier plutôt que la mémoire : plusieurs connexions
    doivent voir les mêmes données (transactions concurrentes).
    """
    engine = create_engine(f"sqlite:///{tmp_path / 'inventory.db'}")
    orm.metadata.create_all(engine)
    yield sessionmaker(bind=engine)
    engine.dispose()


@pytest.fixture
def add_part(sqlite_session_factory):
    """Insère une fiche dans le catalogue de pièces."""

    def _add_part(
        part_id, part_number=None, part_name="Pièce", unit_cost=Decimal("0"), lead_time_days=0
    ):
        with sqlite_session_factory() as session:
            session.execute(
                orm.parts.insert().values(
                    part_id=part_id,
                    part_number=part_number or part_id.upper(),
                    part_name=part_name,
                    unit_cost=unit_cost,
                    unit_price=unit_cost,
                    lead_time_days=lead_time_days,
                )
            )
            session.commit()

    return _add_part
