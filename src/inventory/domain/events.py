"""
Events du domaine.

Les events représentent des faits qui se sont produits dans le système.
Ils sont immuables et nommés au passé (quelque chose s'est passé).

Un event n'est jamais persisté : il est bufferisé par l'agrégat Inventory,
puis dispatché une seule fois après le commit de la transaction.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone


def _new_id() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Event:
    """
    Classe de base pour tous les events du domaine.

    L'identité et l'horodatage sont keyword-only pour que les
    sous-classes puissent déclarer leur payload positionnellement.
    """

    event_id: str = field(default_factory=_new_id, kw_only=True)
    occurred_on: datetime = field(default_factory=_utcnow, kw_only=True)


@dataclass(frozen=True)
class InventoryReserved(Event):
    """Des pièces ont été réservées pour un ordre de travail."""

    inventory_id: str
    part_id: str
    work_order_id: str
    warehouse: str
    quantity: int
    new_available: int


@dataclass(frozen=True)
class InventoryIssued(Event):
    """Des pièces réservées ont été sorties physiquement du stock."""

    inventory_id: str
    part_id: str
    work_order_id: str
    warehouse: str
    quantity: int
    remaining_on_hand: int


@dataclass(frozen=True)
class InventoryReceived(Event):
    """Des pièces ont été réceptionnées (livraison fournisseur)."""

    inventory_id: str
    part_id: str
    warehouse: str
    quantity: int
    new_on_hand: int
    reference_number: str = ""


@dataclass(frozen=True)
class InventoryAdjusted(Event):
    """La quantité en stock a été corrigée (inventaire tournant, écart)."""

    inventory_id: str
    part_id: str
    warehouse: str
    old_quantity: int
    new_quantity: int
    difference: int
    reason: str


@dataclass(frozen=True)
class InventoryLowStockDetected(Event):
    """Le stock physique est passé sous le seuil minimum."""

    inventory_id: str
    part_id: str
    warehouse: str
    current_quantity: int
    minimum_stock_level: int
    reorder_quantity: int
