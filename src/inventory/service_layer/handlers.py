"""
Handlers pour les commands et events.

Les handlers sont les fonctions qui traitent les commands et events
transitant par le message bus.

- Command handlers : exécutent une action (peuvent échouer)
- Event handlers (observateurs) : réagissent à un fait passé ;
  leurs échecs sont isolés par le dispatcher
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from inventory import config
from inventory.domain import commands, events, model

if TYPE_CHECKING:
    from inventory.adapters.catalog import AbstractCatalog
    from inventory.adapters.notifications import AbstractNotifications
    from inventory.service_layer.unit_of_work import AbstractUnitOfWork

logger = logging.getLogger(__name__)


# --- Exceptions ---


class InventoryNotFound(Exception):
    """Levée quand un emplacement de stock référencé n'existe pas."""
    pass


class UnknownPart(Exception):
    """Levée quand la pièce n'existe pas dans le catalogue."""
    pass


class DuplicateLocation(Exception):
    """Levée quand la pièce a déjà un emplacement dans cet entrepôt."""
    pass


def _load(uow: AbstractUnitOfWork, inventory_id: str) -> model.Inventory:
    inventory = uow.inventories.get(inventory_id)
    if inventory is None:
        raise InventoryNotFound(f"Emplacement de stock inconnu : {inventory_id}")
    return inventory


# --- Command Handlers ---


def create_inventory(
    cmd: commands.CreateInventory,
    uow: AbstractUnitOfWork,
    catalog: AbstractCatalog,
) -> str:
    """
    Ouvre un emplacement de stock pour une pièce du catalogue.

    Retourne l'identifiant du nouvel emplacement.
    """
    if catalog.get_part(cmd.part_id) is None:
        raise UnknownPart(f"Pièce inconnue : {cmd.part_id}")
    with uow:
        if uow.inventories.get_by_part_and_warehouse(cmd.part_id, cmd.warehouse) is not None:
            raise DuplicateLocation(
                f"La pièce {cmd.part_id} a déjà un emplacement dans l'entrepôt {cmd.warehouse}"
            )
        inventory = model.Inventory.create(
            part_id=cmd.part_id,
            warehouse=cmd.warehouse,
            bin_location=cmd.bin_location,
            minimum_stock_level=cmd.minimum_stock_level,
            maximum_stock_level=cmd.maximum_stock_level,
            reorder_quantity=cmd.reorder_quantity,
        )
        uow.inventories.add(inventory)
        uow.commit()
        return inventory.inventory_id


def reserve_parts(
    cmd: commands.ReserveParts,
    uow: AbstractUnitOfWork,
) -> model.StockSnapshot:
    with uow:
        inventory = _load(uow, cmd.inventory_id)
        inventory.reserve_parts(cmd.quantity, cmd.work_order_id, cmd.requested_by)
        uow.commit()
        return inventory.snapshot()


def release_reservation(
    cmd: commands.ReleaseReservation,
    uow: AbstractUnitOfWork,
) -> model.StockSnapshot:
    with uow:
        inventory = _load(uow, cmd.inventory_id)
        inventory.release_reservation(cmd.quantity, cmd.work_order_id, cmd.released_by)
        uow.commit()
        return inventory.snapshot()


def issue_parts(
    cmd: commands.IssueParts,
    uow: AbstractUnitOfWork,
) -> model.StockSnapshot:
    with uow:
        inventory = _load(uow, cmd.inventory_id)
        inventory.issue_parts(cmd.quantity, cmd.work_order_id, cmd.issued_by)
        uow.commit()
        return inventory.snapshot()


def receive_parts(
    cmd: commands.ReceiveParts,
    uow: AbstractUnitOfWork,
) -> model.StockSnapshot:
    with uow:
        inventory = _load(uow, cmd.inventory_id)
        inventory.receive_parts(cmd.quantity, cmd.received_by, cmd.reference_number)
        uow.commit()
        return inventory.snapshot()


def adjust_quantity(
    cmd: commands.AdjustQuantity,
    uow: AbstractUnitOfWork,
) -> model.StockSnapshot:
    with uow:
        inventory = _load(uow, cmd.inventory_id)
        inventory.adjust_quantity(cmd.new_quantity, cmd.reason, cmd.adjusted_by)
        uow.commit()
        return inventory.snapshot()


def update_stock_levels(
    cmd: commands.UpdateStockLevels,
    uow: AbstractUnitOfWork,
) -> model.StockSnapshot:
    with uow:
        inventory = _load(uow, cmd.inventory_id)
        inventory.update_stock_levels(
            cmd.minimum_stock_level, cmd.maximum_stock_level, cmd.reorder_quantity
        )
        uow.commit()
        return inventory.snapshot()


def move_to_bin_location(
    cmd: commands.MoveToBinLocation,
    uow: AbstractUnitOfWork,
) -> model.StockSnapshot:
    with uow:
        inventory = _load(uow, cmd.inventory_id)
        inventory.move_to_bin_location(cmd.bin_location, cmd.moved_by)
        uow.commit()
        return inventory.snapshot()


def deactivate(
    cmd: commands.Deactivate,
    uow: AbstractUnitOfWork,
) -> model.StockSnapshot:
    with uow:
        inventory = _load(uow, cmd.inventory_id)
        inventory.deactivate()
        uow.commit()
        return inventory.snapshot()


# --- Event Handlers ---


def log_stock_movement(event: events.Event) -> None:
    """
    Trace un mouvement de stock.

    Dans un système complet, cela publierait vers un bus externe
    (analytics, coûts des ordres de travail).
    """
    logger.info(
        "Mouvement de stock %s : emplacement %s, pièce %s, entrepôt %s (event %s)",
        type(event).__name__, event.inventory_id, event.part_id, event.warehouse, event.event_id,
    )


def log_low_stock(event: events.InventoryLowStockDetected) -> None:
    logger.warning(
        "STOCK BAS : pièce %s à l'entrepôt %s sous le minimum."
        " Actuel : %d, minimum : %d, réapprovisionnement : %d (event %s)",
        event.part_id, event.warehouse, event.current_quantity,
        event.minimum_stock_level, event.reorder_quantity, event.event_id,
    )


def send_low_stock_alert(
    event: events.InventoryLowStockDetected,
    notifications: AbstractNotifications,
    catalog: AbstractCatalog,
) -> None:
    """
    Prévient l'équipe achats qu'un emplacement est sous son minimum.

    L'alerte est enrichie avec la fiche catalogue (coût, délai) ;
    une pièce absente du catalogue n'empêche pas l'envoi.
    """
    lines = [
        f"Stock bas pour la pièce {event.part_id} à l'entrepôt {event.warehouse}.",
        f"Quantité actuelle : {event.current_quantity} (minimum {event.minimum_stock_level}).",
        f"Quantité de réapprovisionnement suggérée : {event.reorder_quantity}.",
    ]
    part = catalog.get_part(event.part_id)
    if part is not None:
        lines.insert(1, f"{part.part_number} - {part.part_name}")
        lines.append(
            f"Coût unitaire : {part.unit_cost}, délai fournisseur : {part.lead_time_days} jours."
        )
    notifications.send(
        destination=config.get_alert_recipient(),
        message="\n".join(lines),
    )
