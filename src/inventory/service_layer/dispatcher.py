"""
Dispatcher des événements du domaine.

Le dispatcher reçoit, à la construction, un registre figé qui associe
chaque type d'événement à la liste ordonnée de ses observateurs.
Au dispatch, on cherche le type exact de l'événement (pas de
correspondance sur les classes parentes), puis on appelle chaque
observateur l'un après l'autre, dans l'ordre d'enregistrement.

Un observateur qui échoue est loggé et n'empêche pas les suivants
de s'exécuter. Rien ne remonte à l'appelant, rien n'est rejoué.
"""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Callable, Iterable, Mapping, Sequence

from inventory.domain import events

logger = logging.getLogger(__name__)

Observer = Callable[[events.Event], None]


def observer_name(observer: Observer) -> str:
    """Nom lisible d'un observateur, y compris quand il est enveloppé dans un partial."""
    func = getattr(observer, "func", observer)
    return getattr(func, "__qualname__", repr(observer))


class EventDispatcher:
    def __init__(self, registry: Mapping[type[events.Event], Sequence[Observer]]):
        self.registry: Mapping[type[events.Event], tuple[Observer, ...]] = MappingProxyType(
            {event_type: tuple(observers) for event_type, observers in registry.items()}
        )

    def dispatch(self, event: events.Event) -> int:
        """
        Dispatch un event vers tous ses observateurs.

        Retourne le nombre d'observateurs en échec.
        """
        event_type = type(event).__name__
        observers = self.registry.get(type(event), ())
        if not observers:
            logger.warning("Aucun observateur pour l'event %s (id %s)", event_type, event.event_id)
            return 0

        logger.debug(
            "Dispatch de l'event %s (id %s) vers %d observateur(s)",
            event_type, event.event_id, len(observers),
        )
        failures = 0
        for observer in observers:
            try:
                observer(event)
            except Exception:
                failures += 1
                logger.exception(
                    "Erreur de l'observateur %s pour l'event %s (id %s)",
                    observer_name(observer), event_type, event.event_id,
                )
        return failures

    def dispatch_all(self, batch: Iterable[events.Event]) -> int:
        """Dispatch les events dans l'ordre fourni, chacun entièrement avant le suivant."""
        return sum(self.dispatch(event) for event in batch)
