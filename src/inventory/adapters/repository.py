"""
Pattern Repository.

Le repository fournit une abstraction sur la couche de persistance.
Il expose une interface de type collection (add, get) qui masque
les détails de l'accès aux données.
"""

from __future__ import annotations

import abc

from sqlalchemy.orm import Session

from inventory.domain import model


class AbstractRepository(abc.ABC):
    """
    Interface abstraite du repository.

    Le pattern Template Method est utilisé : les méthodes publiques
    (add, get) gèrent le tracking via `seen`, puis délèguent
    aux méthodes abstraites préfixées _ que les sous-classes implémentent.
    """

    seen: set[model.Inventory]

    def __init__(self) -> None:
        # `seen` trace tous les agrégats consultés pendant la transaction,
        # ce qui permet au Unit of Work de collecter leurs événements.
        self.seen: set[model.Inventory] = set()

    def add(self, inventory: model.Inventory) -> None:
        """Ajoute un emplacement de stock au repository et le marque comme vu."""
        self._add(inventory)
        self.seen.add(inventory)

    def get(self, inventory_id: str) -> model.Inventory | None:
        """Récupère un emplacement par son identifiant et le marque comme vu."""
        inventory = self._get(inventory_id)
        if inventory:
            self.seen.add(inventory)
        return inventory

    def get_by_part_and_warehouse(self, part_id: str, warehouse: str) -> model.Inventory | None:
        """Récupère l'emplacement d'une pièce dans un entrepôt donné."""
        inventory = self._get_by_part_and_warehouse(part_id, warehouse)
        if inventory:
            self.seen.add(inventory)
        return inventory

    @abc.abstractmethod
    def _add(self, inventory: model.Inventory) -> None:
        raise NotImplementedError

    @abc.abstractmethod
    def _get(self, inventory_id: str) -> model.Inventory | None:
        raise NotImplementedError

    @abc.abstractmethod
    def _get_by_part_and_warehouse(self, part_id: str, warehouse: str) -> model.Inventory | None:
        raise NotImplementedError


class SqlAlchemyRepository(AbstractRepository):
    """Implémentation concrète du repository avec SQLAlchemy."""

    def __init__(self, session: Session):
        super().__init__()
        self.session = session

    def _add(self, inventory: model.Inventory) -> None:
        self.session.add(inventory)

    def _get(self, inventory_id: str) -> model.Inventory | None:
        return self.session.get(model.Inventory, inventory_id)

    def _get_by_part_and_warehouse(self, part_id: str, warehouse: str) -> model.Inventory | None:
        return (
            self.session.query(model.Inventory)
            .filter_by(part_id=part_id, warehouse=warehouse)
            .first()
        )
