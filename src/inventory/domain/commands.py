"""
Commands du domaine.

Les commands représentent des intentions : quelque chose que
le système doit faire. Contrairement aux events (faits passés),
les commands sont des demandes qui peuvent échouer.
"""

from dataclasses import dataclass
from typing import Optional


class Command:
    """Classe de base pour toutes les commands."""
    pass


@dataclass(frozen=True)
class CreateInventory(Command):
    """Demande d'ouverture d'un emplacement de stock pour une pièce."""

    part_id: str
    warehouse: str
    bin_location: str
    minimum_stock_level: int
    maximum_stock_level: int
    reorder_quantity: Optional[int] = None


@dataclass(frozen=True)
class ReserveParts(Command):
    """Demande de réservation de pièces pour un ordre de travail."""

    inventory_id: str
    quantity: int
    work_order_id: str
    requested_by: str


@dataclass(frozen=True)
class ReleaseReservation(Command):
    """Demande de libération d'une réservation."""

    inventory_id: str
    quantity: int
    work_order_id: str
    released_by: str


@dataclass(frozen=True)
class IssueParts(Command):
    """Demande de sortie de pièces réservées."""

    inventory_id: str
    quantity: int
    work_order_id: str
    issued_by: str


@dataclass(frozen=True)
class ReceiveParts(Command):
    """Demande de réception de pièces."""

    inventory_id: str
    quantity: int
    received_by: str
    reference_number: str = ""


@dataclass(frozen=True)
class AdjustQuantity(Command):
    """Demande de correction de la quantité en stock."""

    inventory_id: str
    new_quantity: int
    reason: str
    adjusted_by: str


@dataclass(frozen=True)
class UpdateStockLevels(Command):
    inventory_id: str
    minimum_stock_level: int
    maximum_stock_level: int
    reorder_quantity: int


@dataclass(frozen=True)
class MoveToBinLocation(Command):
    inventory_id: str
    bin_location: str
    moved_by: str


@dataclass(frozen=True)
class Deactivate(Command):
    inventory_id: str
