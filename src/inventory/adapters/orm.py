"""
Mapping ORM avec SQLAlchemy (classical mapping).

On définit les tables séparément, puis on mappe les classes
du domaine sur ces tables. Cela permet au modèle de domaine
de rester ignorant de la persistance (persistence ignorance).

La colonne version_number de `inventories` est déclarée comme
version_id_col : chaque UPDATE porte un WHERE sur la version lue,
ce qui détecte les écritures concurrentes (concurrence optimiste).
"""

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    MetaData,
    Numeric,
    String,
    Table,
    UniqueConstraint,
    event,
)
from sqlalchemy.orm import registry, relationship

from inventory.domain import model

metadata = MetaData()
mapper_registry = registry(metadata=metadata)

# --- Définition des tables ---

inventories = Table(
    "inventories",
    metadata,
    Column("inventory_id", String(36), primary_key=True),
    Column("part_id", String(36), nullable=False, index=True),
    Column("warehouse", String(255), nullable=False, index=True),
    Column("bin_location", String(255), nullable=False, server_default=""),
    Column("quantity_on_hand", Integer, nullable=False, server_default="0"),
    Column("quantity_reserved", Integer, nullable=False, server_default="0"),
    Column("minimum_stock_level", Integer, nullable=False, server_default="0"),
    Column("maximum_stock_level", Integer, nullable=False, server_default="0"),
    Column("reorder_quantity", Integer, nullable=False, server_default="0"),
    Column("is_active", Boolean, nullable=False, server_default="1"),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=True),
    Column("version_number", Integer, nullable=False, server_default="0"),
    UniqueConstraint("part_id", "warehouse", name="uq_inventories_part_warehouse"),
)

inventory_transactions = Table(
    "inventory_transactions",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("transaction_id", String(36), nullable=False, unique=True),
    Column(
        "inventory_id",
        String(36),
        ForeignKey("inventories.inventory_id"),
        nullable=False,
        index=True,
    ),
    Column("transaction_type", Enum(model.TransactionType), nullable=False),
    Column("quantity", Integer, nullable=False),
    Column("work_order_id", String(36), nullable=True),
    Column("reference_number", String(255), nullable=False, server_default=""),
    Column("notes", String(1000), nullable=False, server_default=""),
    Column("transaction_date", DateTime(timezone=True), nullable=False),
    Column("transaction_by", String(255), nullable=False),
)

# Catalogue : données de référence en lecture seule pour ce module,
# pas de mapping vers une classe du domaine.
parts = Table(
    "parts",
    metadata,
    Column("part_id", String(36), primary_key=True),
    Column("part_number", String(100), nullable=False, unique=True),
    Column("part_name", String(255), nullable=False),
    Column("unit_cost", Numeric(12, 2), nullable=False, server_default="0"),
    Column("unit_price", Numeric(12, 2), nullable=False, server_default="0"),
    Column("lead_time_days", Integer, nullable=False, server_default="0"),
)


def start_mappers() -> None:
    """
    Configure le mapping entre les classes du domaine et les tables SQL.

    version_id_generator=False : c'est l'agrégat qui incrémente
    version_number ; SQLAlchemy se contente de vérifier l'ancienne
    valeur dans le WHERE de l'UPDATE et lève StaleDataError sinon.

    lazy="noload" : le journal est en ajout seul. Ajouter une écriture
    ne charge pas l'historique (pas de SELECT, donc pas d'autoflush au
    milieu d'une opération) ; la nouvelle ligne part en INSERT au commit.
    """
    if mapper_registry.mappers:
        return
    ledger_mapper = mapper_registry.map_imperatively(
        model.LedgerEntry,
        inventory_transactions,
    )
    mapper_registry.map_imperatively(
        model.Inventory,
        inventories,
        properties={
            "_ledger": relationship(
                ledger_mapper,
                order_by=inventory_transactions.c.id,
                cascade="all",
                lazy="noload",
            ),
        },
        version_id_col=inventories.c.version_number,
        version_id_generator=False,
    )


@event.listens_for(model.Inventory, "load")
def receive_load(inventory: model.Inventory, _: object) -> None:
    """Initialise le buffer d'événements quand un Inventory est chargé depuis la BDD."""
    inventory.events = []
