"""
Pattern Unit of Work.

Le Unit of Work (UoW) gère la notion de transaction atomique.
Il coordonne l'écriture en base de données et la collecte
des événements émis par les agrégats au cours de la transaction.

Le UoW agit comme un context manager :
    with uow:
        # ... opérations sur le repository ...
        uow.commit()

Les événements ne sortent du UoW qu'après un commit réussi :
un commit en échec (conflit de version, erreur SQL) ne libère rien,
et les buffers des agrégats non committés sont vidés à la sortie.
"""

from __future__ import annotations

import abc
import logging
import threading
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from inventory import config
from inventory.adapters import repository
from inventory.domain import events

logger = logging.getLogger(__name__)

DEFAULT_SESSION_FACTORY = sessionmaker(
    bind=create_engine(
        config.get_database_uri(),
        isolation_level="SERIALIZABLE",
    ),
    autoflush=False,
)


class ConcurrencyConflict(Exception):
    """
    Levée quand l'emplacement a été modifié par une autre transaction
    depuis sa lecture. L'appelant doit recharger et réessayer.
    """
    pass


class PersistenceError(Exception):
    """Levée quand l'écriture en base échoue pour une autre raison."""
    pass


class AbstractUnitOfWork(abc.ABC):
    """
    Interface abstraite du Unit of Work.

    Fournit un repository `inventories` et gère commit/rollback.
    Le rollback est automatique si commit() n'est pas appelé
    (grâce au __exit__ du context manager).
    """

    inventories: repository.AbstractRepository

    def __init__(self) -> None:
        # Une même instance sert plusieurs threads (requêtes Flask) :
        # chaque thread a ses propres événements committés.
        self._state = threading.local()

    @property
    def _committed_events(self) -> list[events.Event]:
        if not hasattr(self._state, "committed_events"):
            self._state.committed_events = []
        return self._state.committed_events

    def __enter__(self) -> AbstractUnitOfWork:
        return self

    def __exit__(self, *args: object) -> None:
        self.rollback()
        # Ce qui reste dans les buffers n'a pas été committé.
        for inventory in self.inventories.seen:
            if inventory.events:
                logger.debug(
                    "Abandon de %d événement(s) non committé(s) de %s",
                    len(inventory.events), inventory,
                )
                inventory.events.clear()

    def commit(self) -> None:
        """
        Persiste tous les agrégats vus, puis seulement en cas de succès
        transfère leurs événements vers la liste des événements committés.

        L'ordre d'émission est conservé pour chaque agrégat ; aucun
        ordre n'est garanti entre agrégats différents.
        """
        self._commit()
        for inventory in self.inventories.seen:
            self._committed_events.extend(inventory.events)
            inventory.events.clear()

    def collect_new_events(self) -> Iterator[events.Event]:
        """Vide et retourne les événements des commits réussis, dans l'ordre."""
        while self._committed_events:
            yield self._committed_events.pop(0)

    @abc.abstractmethod
    def _commit(self) -> None:
        raise NotImplementedError

    @abc.abstractmethod
    def rollback(self) -> None:
        raise NotImplementedError


class SqlAlchemyUnitOfWork(AbstractUnitOfWork):
    """
    Implémentation concrète du UoW avec SQLAlchemy.

    Crée une session à l'entrée du context manager,
    la ferme à la sortie. Rollback automatique si pas de commit.

    La session et le repository sont propres au thread courant : une
    requête ne peut pas committer la session d'une autre. Les erreurs
    SQLAlchemy levées dans le bloc `with` sont traduites à la sortie,
    celles du commit le sont dans `_commit`.
    """

    def __init__(self, session_factory: sessionmaker = DEFAULT_SESSION_FACTORY):
        super().__init__()
        self.session_factory = session_factory

    @property
    def session(self) -> Session:
        return self._state.session

    @property
    def inventories(self) -> repository.SqlAlchemyRepository:
        return self._state.inventories

    def __enter__(self) -> SqlAlchemyUnitOfWork:
        self._state.session = self.session_factory()
        self._state.inventories = repository.SqlAlchemyRepository(self._state.session)
        return super().__enter__()

    def __exit__(self, exc_type, exc, tb) -> None:
        super().__exit__(exc_type, exc, tb)
        self.session.close()
        if isinstance(exc, SQLAlchemyError):
            raise _translate(exc) from exc

    def _commit(self) -> None:
        try:
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise _translate(e) from e

    def rollback(self) -> None:
        self.session.rollback()


def _translate(error: SQLAlchemyError) -> Exception:
    if isinstance(error, StaleDataError):
        return ConcurrencyConflict(
            "L'emplacement a été modifié par une autre transaction, rechargez et réessayez"
        )
    return PersistenceError(f"Échec de l'accès à la base : {type(error).__name__}")
