"""
Modèle de domaine pour le stock de pièces détachées.

Ce module contient l'agrégat Inventory (le stock d'une pièce dans un
entrepôt donné) et son journal de mouvements (LedgerEntry).

L'agrégat est la frontière de cohérence : toutes les modifications
de quantité passent par ses méthodes, qui valident d'abord, modifient
ensuite, ajoutent une écriture au journal et émettent les événements
du domaine. Une opération refusée ne modifie rien.
"""

from __future__ import annotations

import enum
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from inventory.domain import events


# --- Exceptions ---


class InventoryError(Exception):
    """Classe de base des erreurs de validation de l'agrégat Inventory."""
    pass


class InvalidQuantity(InventoryError):
    """Levée quand une quantité est nulle ou négative."""
    pass


class InsufficientAvailable(InventoryError):
    """Levée quand une réservation dépasse la quantité disponible."""
    pass


class InsufficientReserved(InventoryError):
    """Levée quand une libération ou une sortie dépasse la quantité réservée."""
    pass


class InsufficientOnHand(InventoryError):
    """Levée quand le stock physique ne couvre pas l'opération demandée."""
    pass


class InvalidStockLevels(InventoryError):
    """Levée quand les seuils sont négatifs ou que max < min."""
    pass


class InactiveLocation(InventoryError):
    """Levée quand on modifie un emplacement désactivé."""
    pass


class InvalidLocation(InventoryError):
    """Levée quand la pièce, l'entrepôt ou le casier est manquant."""
    pass


class LocationNotEmpty(InventoryError):
    """Levée quand on désactive un emplacement qui contient encore du stock."""
    pass


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


# --- Journal des mouvements ---


class TransactionType(enum.Enum):
    RECEIPT = "Receipt"
    RESERVATION = "Reservation"
    RELEASE = "Release"
    ISSUE = "Issue"
    ADJUSTMENT = "Adjustment"


@dataclass
class LedgerEntry:
    """
    Écriture du journal de stock.

    Une écriture est créée une seule fois par opération, via les
    constructeurs ci-dessous, et n'est jamais modifiée ni supprimée :
    c'est la piste d'audit. Seul l'agrégat Inventory l'ajoute.

    La quantité est signée : positive pour une réception ou une
    réservation, négative pour une libération ou une sortie,
    égale à l'écart pour un ajustement.
    """

    transaction_id: str
    inventory_id: str
    transaction_type: TransactionType
    quantity: int
    transaction_by: str
    work_order_id: Optional[str] = None
    reference_number: str = ""
    notes: str = ""
    transaction_date: datetime = field(default_factory=_utcnow)

    @classmethod
    def receipt(
        cls, inventory_id: str, quantity: int, received_by: str, reference_number: str = ""
    ) -> LedgerEntry:
        return cls(
            transaction_id=_new_id(),
            inventory_id=inventory_id,
            transaction_type=TransactionType.RECEIPT,
            quantity=quantity,
            transaction_by=received_by,
            reference_number=reference_number or "",
            notes=f"Réception de {quantity} pièces",
        )

    @classmethod
    def reservation(
        cls, inventory_id: str, quantity: int, work_order_id: str, requested_by: str
    ) -> LedgerEntry:
        return cls(
            transaction_id=_new_id(),
            inventory_id=inventory_id,
            transaction_type=TransactionType.RESERVATION,
            quantity=quantity,
            transaction_by=requested_by,
            work_order_id=work_order_id,
            notes=f"Réservation de {quantity} pièces pour l'ordre de travail",
        )

    @classmethod
    def release(
        cls, inventory_id: str, quantity: int, work_order_id: str, released_by: str
    ) -> LedgerEntry:
        return cls(
            transaction_id=_new_id(),
            inventory_id=inventory_id,
            transaction_type=TransactionType.RELEASE,
            quantity=-quantity,
            transaction_by=released_by,
            work_order_id=work_order_id,
            notes=f"Libération de {quantity} pièces réservées",
        )

    @classmethod
    def issue(
        cls, inventory_id: str, quantity: int, work_order_id: str, issued_by: str
    ) -> LedgerEntry:
        return cls(
            transaction_id=_new_id(),
            inventory_id=inventory_id,
            transaction_type=TransactionType.ISSUE,
            quantity=-quantity,
            transaction_by=issued_by,
            work_order_id=work_order_id,
            notes=f"Sortie de {quantity} pièces pour l'ordre de travail",
        )

    @classmethod
    def adjustment(
        cls, inventory_id: str, difference: int, reason: str, adjusted_by: str
    ) -> LedgerEntry:
        return cls(
            transaction_id=_new_id(),
            inventory_id=inventory_id,
            transaction_type=TransactionType.ADJUSTMENT,
            quantity=difference,
            transaction_by=adjusted_by,
            notes=reason,
        )


@dataclass(frozen=True)
class StockSnapshot:
    """État du stock retourné aux appelants après une command."""

    inventory_id: str
    part_id: str
    warehouse: str
    bin_location: str
    quantity_on_hand: int
    quantity_reserved: int
    available: int
    minimum_stock_level: int
    maximum_stock_level: int
    reorder_quantity: int
    is_low_stock: bool
    is_out_of_stock: bool
    is_active: bool
    version_number: int


def _validate_stock_levels(minimum: int, maximum: int, reorder_quantity: int) -> None:
    if minimum < 0:
        raise InvalidStockLevels("Le seuil minimum ne peut pas être négatif")
    if maximum < minimum:
        raise InvalidStockLevels(
            f"Le seuil maximum ({maximum}) doit être >= au minimum ({minimum})"
        )
    if reorder_quantity < 0:
        raise InvalidStockLevels("La quantité de réapprovisionnement ne peut pas être négative")


def _require_positive_quantity(quantity: int) -> None:
    if quantity <= 0:
        raise InvalidQuantity(f"La quantité doit être positive (reçu : {quantity})")


# --- Agrégat ---


class Inventory:
    """
    Agrégat racine : le stock d'une pièce dans un entrepôt.

    La pièce n'est référencée que par son identifiant (part_id) :
    le catalogue est un autre agrégat, avec son propre cycle de vie.

    Invariants, vrais après chaque opération :
    - 0 <= quantity_reserved <= quantity_on_hand
    - available = quantity_on_hand - quantity_reserved >= 0
    - maximum_stock_level >= minimum_stock_level >= 0
    - un emplacement inactif ne subit plus aucun mouvement de quantité

    `events` est le buffer des événements émis mais pas encore
    dispatchés. Le Unit of Work le vide après un commit réussi.
    Chaque opération retourne aussi les événements qu'elle a émis.
    """

    def __init__(
        self,
        inventory_id: str,
        part_id: str,
        warehouse: str,
        bin_location: str = "",
        minimum_stock_level: int = 0,
        maximum_stock_level: int = 0,
        reorder_quantity: int = 0,
        quantity_on_hand: int = 0,
        quantity_reserved: int = 0,
        is_active: bool = True,
        created_at: Optional[datetime] = None,
        updated_at: Optional[datetime] = None,
        version_number: int = 0,
    ):
        self.inventory_id = inventory_id
        self.part_id = part_id
        self.warehouse = warehouse
        self.bin_location = bin_location
        self.minimum_stock_level = minimum_stock_level
        self.maximum_stock_level = maximum_stock_level
        self.reorder_quantity = reorder_quantity
        self.quantity_on_hand = quantity_on_hand
        self.quantity_reserved = quantity_reserved
        self.is_active = is_active
        self.created_at = created_at or _utcnow()
        self.updated_at = updated_at
        self.version_number = version_number
        self._ledger: list[LedgerEntry] = []
        self.events: list[events.Event] = []

    @classmethod
    def create(
        cls,
        part_id: str,
        warehouse: str,
        bin_location: str,
        minimum_stock_level: int,
        maximum_stock_level: int,
        reorder_quantity: Optional[int] = None,
    ) -> Inventory:
        """
        Ouvre un emplacement de stock vide pour une pièce.

        Sans quantité de réapprovisionnement explicite, on propose
        de remonter du minimum au maximum.
        """
        if not part_id or not part_id.strip():
            raise InvalidLocation("La référence de pièce est obligatoire")
        if not warehouse or not warehouse.strip():
            raise InvalidLocation("L'entrepôt est obligatoire")
        if reorder_quantity is None:
            reorder_quantity = max(maximum_stock_level - minimum_stock_level, 0)
        _validate_stock_levels(minimum_stock_level, maximum_stock_level, reorder_quantity)
        return cls(
            inventory_id=_new_id(),
            part_id=part_id,
            warehouse=warehouse,
            bin_location=bin_location or "",
            minimum_stock_level=minimum_stock_level,
            maximum_stock_level=maximum_stock_level,
            reorder_quantity=reorder_quantity,
        )

    def __repr__(self) -> str:
        return f"<Inventory {self.inventory_id} {self.warehouse}>"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Inventory):
            return NotImplemented
        return self.inventory_id == other.inventory_id

    def __hash__(self) -> int:
        return hash(self.inventory_id)

    # --- Requêtes ---

    @property
    def available(self) -> int:
        return self.quantity_on_hand - self.quantity_reserved

    @property
    def is_low_stock(self) -> bool:
        return self.quantity_on_hand < self.minimum_stock_level

    @property
    def is_out_of_stock(self) -> bool:
        return self.quantity_on_hand == 0

    @property
    def is_over_maximum(self) -> bool:
        """Le maximum est indicatif : on le signale, on ne l'impose pas."""
        return self.quantity_on_hand > self.maximum_stock_level

    @property
    def ledger(self) -> tuple[LedgerEntry, ...]:
        """
        Écritures ajoutées depuis la création ou le chargement de l'instance.

        L'historique complet n'est jamais chargé en mémoire pour écrire :
        le journal est en ajout seul, on le relit via views.ledger_history.
        """
        return tuple(self._ledger)

    def calculate_reorder_quantity(self) -> int:
        """Quantité à commander pour remonter au maximum, 0 si le stock suffit."""
        if not self.is_low_stock:
            return 0
        return self.maximum_stock_level - self.quantity_on_hand

    def snapshot(self) -> StockSnapshot:
        return StockSnapshot(
            inventory_id=self.inventory_id,
            part_id=self.part_id,
            warehouse=self.warehouse,
            bin_location=self.bin_location,
            quantity_on_hand=self.quantity_on_hand,
            quantity_reserved=self.quantity_reserved,
            available=self.available,
            minimum_stock_level=self.minimum_stock_level,
            maximum_stock_level=self.maximum_stock_level,
            reorder_quantity=self.reorder_quantity,
            is_low_stock=self.is_low_stock,
            is_out_of_stock=self.is_out_of_stock,
            is_active=self.is_active,
            version_number=self.version_number,
        )

    # --- Mouvements de stock ---

    def reserve_parts(
        self, quantity: int, work_order_id: str, requested_by: str
    ) -> tuple[events.Event, ...]:
        """
        Réserve des pièces pour un ordre de travail.

        Empêche la double allocation : on ne réserve que
        ce qui est disponible (en stock et pas déjà promis).
        """
        self._require_active()
        _require_positive_quantity(quantity)
        if quantity > self.available:
            raise InsufficientAvailable(
                f"Impossible de réserver {quantity} pièces à {self.warehouse} :"
                f" seulement {self.available} disponibles"
            )

        self.quantity_reserved += quantity
        return self._record(
            LedgerEntry.reservation(self.inventory_id, quantity, work_order_id, requested_by),
            events.InventoryReserved(
                inventory_id=self.inventory_id,
                part_id=self.part_id,
                work_order_id=work_order_id,
                warehouse=self.warehouse,
                quantity=quantity,
                new_available=self.available,
            ),
        )

    def release_reservation(
        self, quantity: int, work_order_id: str, released_by: str
    ) -> tuple[events.Event, ...]:
        """Rend disponibles des pièces réservées (ordre annulé, besoin revu)."""
        self._require_active()
        _require_positive_quantity(quantity)
        if quantity > self.quantity_reserved:
            raise InsufficientReserved(
                f"Impossible de libérer {quantity} pièces :"
                f" seulement {self.quantity_reserved} réservées"
            )

        self.quantity_reserved -= quantity
        return self._record(
            LedgerEntry.release(self.inventory_id, quantity, work_order_id, released_by)
        )

    def issue_parts(
        self, quantity: int, work_order_id: str, issued_by: str
    ) -> tuple[events.Event, ...]:
        """
        Sort du stock des pièces précédemment réservées.

        Émet InventoryIssued, puis InventoryLowStockDetected si la
        sortie fait passer le stock physique sous le minimum.
        """
        self._require_active()
        _require_positive_quantity(quantity)
        if quantity > self.quantity_reserved:
            raise InsufficientReserved(
                f"Impossible de sortir {quantity} pièces :"
                f" seulement {self.quantity_reserved} réservées"
            )
        if quantity > self.quantity_on_hand:
            raise InsufficientOnHand(
                f"Impossible de sortir {quantity} pièces :"
                f" seulement {self.quantity_on_hand} en stock"
            )

        self.quantity_on_hand -= quantity
        self.quantity_reserved -= quantity
        raised: list[events.Event] = [
            events.InventoryIssued(
                inventory_id=self.inventory_id,
                part_id=self.part_id,
                work_order_id=work_order_id,
                warehouse=self.warehouse,
                quantity=quantity,
                remaining_on_hand=self.quantity_on_hand,
            )
        ]
        if self.is_low_stock:
            raised.append(self._low_stock_event())
        return self._record(
            LedgerEntry.issue(self.inventory_id, quantity, work_order_id, issued_by),
            *raised,
        )

    def receive_parts(
        self, quantity: int, received_by: str, reference_number: str = ""
    ) -> tuple[events.Event, ...]:
        """
        Réceptionne des pièces.

        Pas de contrôle du stock bas : la quantité ne peut qu'augmenter.
        Pas de contrôle du maximum non plus, qui reste indicatif.
        """
        self._require_active()
        _require_positive_quantity(quantity)

        self.quantity_on_hand += quantity
        return self._record(
            LedgerEntry.receipt(self.inventory_id, quantity, received_by, reference_number),
            events.InventoryReceived(
                inventory_id=self.inventory_id,
                part_id=self.part_id,
                warehouse=self.warehouse,
                quantity=quantity,
                new_on_hand=self.quantity_on_hand,
                reference_number=reference_number or "",
            ),
        )

    def adjust_quantity(
        self, new_quantity: int, reason: str, adjusted_by: str
    ) -> tuple[events.Event, ...]:
        """
        Corrige la quantité physique (inventaire tournant, casse, erreur).

        On ne peut pas descendre sous ce qui est déjà réservé.
        Le stock bas n'est réévalué que si l'ajustement est à la baisse.
        """
        self._require_active()
        if new_quantity < 0:
            raise InvalidQuantity(
                f"La quantité ne peut pas être négative (reçu : {new_quantity})"
            )
        if new_quantity < self.quantity_reserved:
            raise InsufficientOnHand(
                f"Impossible d'ajuster à {new_quantity} :"
                f" {self.quantity_reserved} pièces sont réservées"
            )

        old_quantity = self.quantity_on_hand
        difference = new_quantity - old_quantity
        self.quantity_on_hand = new_quantity
        raised: list[events.Event] = [
            events.InventoryAdjusted(
                inventory_id=self.inventory_id,
                part_id=self.part_id,
                warehouse=self.warehouse,
                old_quantity=old_quantity,
                new_quantity=new_quantity,
                difference=difference,
                reason=reason,
            )
        ]
        if difference < 0 and self.is_low_stock:
            raised.append(self._low_stock_event())
        return self._record(
            LedgerEntry.adjustment(self.inventory_id, difference, reason, adjusted_by),
            *raised,
        )

    # --- Métadonnées de l'emplacement ---

    def update_stock_levels(
        self, minimum_stock_level: int, maximum_stock_level: int, reorder_quantity: int
    ) -> tuple[events.Event, ...]:
        _validate_stock_levels(minimum_stock_level, maximum_stock_level, reorder_quantity)
        self.minimum_stock_level = minimum_stock_level
        self.maximum_stock_level = maximum_stock_level
        self.reorder_quantity = reorder_quantity
        self._touch()
        return ()

    def move_to_bin_location(self, new_bin_location: str, moved_by: str) -> tuple[events.Event, ...]:
        """Change de casier dans le même entrepôt. Tracé au journal avec une quantité nulle."""
        if not new_bin_location or not new_bin_location.strip():
            raise InvalidLocation("Le casier de destination est obligatoire")

        old_bin = self.bin_location
        self.bin_location = new_bin_location
        return self._record(
            LedgerEntry.adjustment(
                self.inventory_id, 0, f"Déplacement de {old_bin} vers {new_bin_location}", moved_by
            )
        )

    def deactivate(self) -> tuple[events.Event, ...]:
        self._require_active()
        if self.quantity_on_hand > 0:
            raise LocationNotEmpty(
                f"Impossible de désactiver : {self.quantity_on_hand} pièces en stock."
                " Transférer ou ajuster à zéro d'abord."
            )
        self.is_active = False
        self._touch()
        return ()

    # --- Interne ---

    def _require_active(self) -> None:
        if not self.is_active:
            raise InactiveLocation(
                f"L'emplacement {self.inventory_id} ({self.warehouse}) est désactivé"
            )

    def _low_stock_event(self) -> events.InventoryLowStockDetected:
        return events.InventoryLowStockDetected(
            inventory_id=self.inventory_id,
            part_id=self.part_id,
            warehouse=self.warehouse,
            current_quantity=self.quantity_on_hand,
            minimum_stock_level=self.minimum_stock_level,
            reorder_quantity=self.reorder_quantity,
        )

    def _touch(self) -> None:
        # Le numéro de version sert de jeton de concurrence optimiste :
        # chaque modification l'incrémente, l'UPDATE vérifie l'ancien.
        self.version_number += 1
        self.updated_at = _utcnow()

    def _record(
        self, entry: LedgerEntry, *raised: events.Event
    ) -> tuple[events.Event, ...]:
        self._ledger.append(entry)
        self.events.extend(raised)
        self._touch()
        return raised
