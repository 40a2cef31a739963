"""
Message Bus.

Le message bus est le point central de dispatch des messages
(commands et events) vers leurs handlers respectifs.

Fonctionnement :
1. Un message (command ou event) entre dans le bus
2. Le bus trouve le handler de la command, qui commit via le Unit of Work
3. Les événements committés sont collectés et confiés au dispatcher
4. Les événements committés par les observateurs sont traités à leur tour

Différences clés :
- Une command a exactement UN handler ; l'erreur remonte à l'appelant
- Un event peut avoir 0 à N observateurs ; les erreurs sont loggées mais ne bloquent pas
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Union

from inventory.domain import commands, events
from inventory.service_layer import unit_of_work
from inventory.service_layer.dispatcher import EventDispatcher

logger = logging.getLogger(__name__)

Message = Union[commands.Command, events.Event]


class MessageBus:
    """
    Message Bus.

    Les handlers reçoivent déjà leurs dépendances (voir bootstrap) :
    le bus ne résout rien au moment du dispatch.

    Un seul bus sert toutes les requêtes : la file de messages est
    propre à chaque thread, comme la session du Unit of Work.
    """

    def __init__(
        self,
        uow: unit_of_work.AbstractUnitOfWork,
        command_handlers: dict[type[commands.Command], Callable],
        dispatcher: EventDispatcher,
    ):
        self.uow = uow
        self.command_handlers = command_handlers
        self.dispatcher = dispatcher
        self._state = threading.local()

    @property
    def queue(self) -> list[Message]:
        if not hasattr(self._state, "queue"):
            self._state.queue = []
        return self._state.queue

    @queue.setter
    def queue(self, messages: list[Message]) -> None:
        self._state.queue = messages

    def handle(self, message: Message) -> list[Any]:
        """
        Point d'entrée principal : traite un message et tous
        les événements qui en découlent (propagation en cascade).

        Le commit est la frontière de durabilité : si la command échoue
        après avoir committé, les événements déjà committés sont tout
        de même dispatchés avant que l'erreur ne remonte.
        """
        self.queue = [message]
        results: list[Any] = []
        try:
            while self.queue:
                message = self.queue.pop(0)
                if isinstance(message, events.Event):
                    self._handle_event(message)
                elif isinstance(message, commands.Command):
                    results.append(self._handle_command(message))
                else:
                    raise ValueError(f"Message de type inconnu : {type(message)}")
        except Exception:
            self._dispatch_pending()
            raise
        except BaseException:
            undelivered = self._pending()
            if undelivered:
                logger.error(
                    "Dispatch interrompu : %d événement(s) committé(s) non délivré(s) (%s)",
                    len(undelivered),
                    ", ".join(f"{type(e).__name__}:{e.event_id}" for e in undelivered),
                )
            raise
        return results

    def _handle_event(self, event: events.Event) -> None:
        self.dispatcher.dispatch(event)
        self.queue.extend(self.uow.collect_new_events())

    def _handle_command(self, command: commands.Command) -> Any:
        """
        Dispatch une command vers son unique handler.

        Contrairement aux events, une erreur de command remonte
        directement à l'appelant (pas de tolérance).
        """
        logger.debug("Traitement de la command %s", command)
        handler = self.command_handlers.get(type(command))
        if handler is None:
            raise ValueError(f"Aucun handler pour la command {type(command)}")
        try:
            return handler(command)
        finally:
            self.queue.extend(self.uow.collect_new_events())

    def _pending(self) -> list[events.Event]:
        pending = [m for m in self.queue if isinstance(m, events.Event)]
        self.queue = []
        pending.extend(self.uow.collect_new_events())
        return pending

    def _dispatch_pending(self) -> None:
        pending = self._pending()
        while pending:
            self.dispatcher.dispatch_all(pending)
            pending = list(self.uow.collect_new_events())
