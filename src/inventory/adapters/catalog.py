"""
Adapter pour le catalogue de pièces.

Le catalogue (référence, désignation, coût, prix, délai fournisseur)
est un agrégat distinct géré ailleurs. Ce module n'y accède qu'en
lecture, pour valider une pièce à l'ouverture d'un emplacement et
pour enrichir les alertes de stock bas.
"""

from __future__ import annotations

import abc
from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import sessionmaker

from inventory.adapters import orm


@dataclass(frozen=True)
class PartInfo:
    part_id: str
    part_number: str
    part_name: str
    unit_cost: Decimal
    unit_price: Decimal
    lead_time_days: int


class AbstractCatalog(abc.ABC):
    @abc.abstractmethod
    def get_part(self, part_id: str) -> PartInfo | None:
        """Retourne la fiche de la pièce, ou None si elle est inconnue."""
        raise NotImplementedError


class SqlAlchemyCatalog(AbstractCatalog):
    """Lecture de la table `parts`, une session courte par appel."""

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def get_part(self, part_id: str) -> PartInfo | None:
        with self.session_factory() as session:
            row = session.execute(
                select(orm.parts).where(orm.parts.c.part_id == part_id)
            ).first()
        if row is None:
            return None
        return PartInfo(
            part_id=row.part_id,
            part_number=row.part_number,
            part_name=row.part_name,
            unit_cost=Decimal(row.unit_cost),
            unit_price=Decimal(row.unit_price),
            lead_time_days=row.lead_time_days,
        )
