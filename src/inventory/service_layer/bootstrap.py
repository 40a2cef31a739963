"""
Bootstrap : assemblage de l'application (Composition Root).

Ce module construit le message bus avec toutes ses dépendances.
C'est ici que l'injection de dépendances est réalisée :
on assemble les composants concrets (ou les fakes pour les tests).

C'est le seul endroit de l'application qui connaît les
implémentations concrètes de chaque abstraction.
"""

from __future__ import annotations

import functools
import inspect
from typing import Any, Callable

from inventory.adapters import catalog as catalog_adapter
from inventory.adapters import notifications, orm
from inventory.domain import commands, events
from inventory.service_layer import handlers, messagebus, unit_of_work
from inventory.service_layer.dispatcher import EventDispatcher


def bootstrap(
    start_orm: bool = True,
    uow: unit_of_work.AbstractUnitOfWork | None = None,
    notifications_adapter: notifications.AbstractNotifications | None = None,
    catalog: catalog_adapter.AbstractCatalog | None = None,
    **extra_dependencies: Any,
) -> messagebus.MessageBus:
    """
    Construit et retourne un MessageBus configuré.

    En production, utilise les implémentations concrètes.
    En test, on injecte des fakes via les paramètres.
    """
    if start_orm:
        orm.start_mappers()

    if uow is None:
        uow = unit_of_work.SqlAlchemyUnitOfWork()

    if notifications_adapter is None:
        notifications_adapter = notifications.EmailNotifications()

    if catalog is None:
        # Le catalogue lit la même base que le Unit of Work injecté.
        session_factory = getattr(uow, "session_factory", unit_of_work.DEFAULT_SESSION_FACTORY)
        catalog = catalog_adapter.SqlAlchemyCatalog(session_factory)

    dependencies: dict[str, Any] = {
        "uow": uow,
        "notifications": notifications_adapter,
        "catalog": catalog,
        **extra_dependencies,
    }

    # Le registre est construit une fois ici ; le dispatcher le fige.
    dispatcher = EventDispatcher({
        event_type: [inject_dependencies(handler, dependencies) for handler in event_handlers]
        for event_type, event_handlers in EVENT_HANDLERS.items()
    })
    injected_command_handlers = {
        command_type: inject_dependencies(handler, dependencies)
        for command_type, handler in COMMAND_HANDLERS.items()
    }

    return messagebus.MessageBus(
        uow=uow,
        command_handlers=injected_command_handlers,
        dispatcher=dispatcher,
    )


def inject_dependencies(handler: Callable, dependencies: dict[str, Any]) -> Callable:
    """
    Lie au handler les dépendances qu'il attend.

    Introspection : on lit la signature une seule fois, au démarrage.
    Le premier paramètre est toujours le message lui-même ; les
    suivants sont résolus par nom dans le dictionnaire de dépendances.
    """
    params = list(inspect.signature(handler).parameters)[1:]
    deps = {name: dependencies[name] for name in params if name in dependencies}
    return functools.partial(handler, **deps)


# --- Routage des messages vers les handlers ---

EVENT_HANDLERS: dict[type[events.Event], list[Callable]] = {
    events.InventoryReserved: [handlers.log_stock_movement],
    events.InventoryIssued: [handlers.log_stock_movement],
    events.InventoryReceived: [handlers.log_stock_movement],
    events.InventoryAdjusted: [handlers.log_stock_movement],
    events.InventoryLowStockDetected: [
        handlers.log_low_stock,
        handlers.send_low_stock_alert,
    ],
}

COMMAND_HANDLERS: dict[type[commands.Command], Callable] = {
    commands.CreateInventory: handlers.create_inventory,
    commands.ReserveParts: handlers.reserve_parts,
    commands.ReleaseReservation: handlers.release_reservation,
    commands.IssueParts: handlers.issue_parts,
    commands.ReceiveParts: handlers.receive_parts,
    commands.AdjustQuantity: handlers.adjust_quantity,
    commands.UpdateStockLevels: handlers.update_stock_levels,
    commands.MoveToBinLocation: handlers.move_to_bin_location,
    commands.Deactivate: handlers.deactivate,
}
