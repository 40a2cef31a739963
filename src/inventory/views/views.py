"""
Views (lecture) pour le pattern CQRS.

Les views sont des fonctions de lecture pure qui interrogent
directement la base de données, sans passer par le modèle de domaine.

C'est le côté Query de CQRS : on sépare les chemins d'écriture
(qui passent par l'agrégat et le message bus) des chemins de
lecture (qui interrogent directement la BDD).
"""

from __future__ import annotations

from sqlalchemy import text

from inventory.service_layer import unit_of_work

_INVENTORY_COLUMNS = """
    i.inventory_id, i.part_id, i.warehouse, i.bin_location,
    i.quantity_on_hand, i.quantity_reserved,
    i.quantity_on_hand - i.quantity_reserved AS available,
    i.minimum_stock_level, i.maximum_stock_level, i.reorder_quantity,
    i.is_active, i.version_number
"""

_SUMMARY_COLUMNS = """
    COUNT(*) AS total_parts,
    COALESCE(SUM(i.quantity_on_hand), 0) AS total_quantity_on_hand,
    COALESCE(SUM(i.quantity_reserved), 0) AS total_quantity_reserved,
    COALESCE(SUM(i.quantity_on_hand - i.quantity_reserved), 0) AS total_available,
    COALESCE(SUM(CASE WHEN i.quantity_on_hand < i.minimum_stock_level
        THEN 1 ELSE 0 END), 0) AS low_stock_count,
    COALESCE(SUM(CASE WHEN i.quantity_on_hand = 0 THEN 1 ELSE 0 END), 0)
        AS out_of_stock_count,
    COALESCE(SUM(i.quantity_on_hand * COALESCE(p.unit_cost, 0)), 0)
        AS total_inventory_value
"""


def _inventory_row(row) -> dict:
    detail = dict(row._mapping)
    detail["is_active"] = bool(detail["is_active"])
    detail["is_low_stock"] = detail["quantity_on_hand"] < detail["minimum_stock_level"]
    detail["is_out_of_stock"] = detail["quantity_on_hand"] == 0
    return detail


def inventory_detail(inventory_id: str, uow: unit_of_work.SqlAlchemyUnitOfWork) -> dict | None:
    """État courant d'un emplacement, avec les indicateurs dérivés."""
    with uow:
        row = uow.session.execute(
            text(f"SELECT {_INVENTORY_COLUMNS} FROM inventories i WHERE i.inventory_id = :id"),
            dict(id=inventory_id),
        ).first()
    return None if row is None else _inventory_row(row)


def inventory_by_part(part_id: str, uow: unit_of_work.SqlAlchemyUnitOfWork) -> list[dict]:
    """Emplacements actifs d'une pièce, par entrepôt."""
    with uow:
        results = uow.session.execute(
            text(
                f"SELECT {_INVENTORY_COLUMNS} FROM inventories i"
                " WHERE i.part_id = :part_id AND i.is_active"
                " ORDER BY i.warehouse"
            ),
            dict(part_id=part_id),
        )
        return [_inventory_row(r) for r in results]


def inventory_by_part_and_warehouse(
    part_id: str, warehouse: str, uow: unit_of_work.SqlAlchemyUnitOfWork
) -> dict | None:
    with uow:
        row = uow.session.execute(
            text(
                f"SELECT {_INVENTORY_COLUMNS} FROM inventories i"
                " WHERE i.part_id = :part_id AND i.warehouse = :warehouse"
            ),
            dict(part_id=part_id, warehouse=warehouse),
        ).first()
    return None if row is None else _inventory_row(row)


def inventory_by_warehouse(warehouse: str, uow: unit_of_work.SqlAlchemyUnitOfWork) -> list[dict]:
    """Emplacements actifs d'un entrepôt, dans l'ordre des casiers."""
    with uow:
        results = uow.session.execute(
            text(
                f"SELECT {_INVENTORY_COLUMNS} FROM inventories i"
                " WHERE i.warehouse = :warehouse AND i.is_active"
                " ORDER BY i.bin_location"
            ),
            dict(warehouse=warehouse),
        )
        return [_inventory_row(r) for r in results]


def ledger_history(inventory_id: str, uow: unit_of_work.SqlAlchemyUnitOfWork) -> list[dict]:
    """Journal des mouvements d'un emplacement, du plus ancien au plus récent."""
    with uow:
        results = uow.session.execute(
            text(
                "SELECT transaction_id, transaction_type, quantity, work_order_id,"
                " reference_number, notes, transaction_date, transaction_by"
                " FROM inventory_transactions WHERE inventory_id = :id ORDER BY id"
            ),
            dict(id=inventory_id),
        )
        return [dict(r._mapping) for r in results]


def low_stock_alerts(uow: unit_of_work.SqlAlchemyUnitOfWork) -> list[dict]:
    """
    Emplacements actifs sous leur minimum, enrichis par le catalogue.

    La quantité à commander ramène le stock au maximum.
    """
    with uow:
        results = uow.session.execute(
            text(
                "SELECT i.inventory_id, i.part_id, p.part_number, p.part_name, i.warehouse,"
                " i.quantity_on_hand AS current_quantity, i.minimum_stock_level,"
                " i.maximum_stock_level - i.quantity_on_hand AS reorder_quantity,"
                " p.unit_cost, p.lead_time_days"
                " FROM inventories i LEFT OUTER JOIN parts p ON p.part_id = i.part_id"
                " WHERE i.is_active AND i.quantity_on_hand < i.minimum_stock_level"
                " ORDER BY i.warehouse, i.part_id"
            )
        )
        return [dict(r._mapping) for r in results]


def out_of_stock(uow: unit_of_work.SqlAlchemyUnitOfWork) -> list[dict]:
    with uow:
        results = uow.session.execute(
            text(
                f"SELECT {_INVENTORY_COLUMNS} FROM inventories i"
                " WHERE i.is_active AND i.quantity_on_hand = 0"
                " ORDER BY i.warehouse, i.part_id"
            )
        )
        return [_inventory_row(r) for r in results]


def warehouse_summary(warehouse: str, uow: unit_of_work.SqlAlchemyUnitOfWork) -> dict:
    """Totaux d'un entrepôt : quantités, alertes et valeur du stock au coût."""
    with uow:
        row = uow.session.execute(
            text(
                f"SELECT {_SUMMARY_COLUMNS}"
                " FROM inventories i LEFT OUTER JOIN parts p ON p.part_id = i.part_id"
                " WHERE i.warehouse = :warehouse AND i.is_active"
            ),
            dict(warehouse=warehouse),
        ).one()
    summary = dict(row._mapping)
    summary["warehouse"] = warehouse
    return summary


def warehouse_summaries(uow: unit_of_work.SqlAlchemyUnitOfWork) -> list[dict]:
    """Une synthèse par entrepôt ayant au moins un emplacement actif."""
    with uow:
        results = uow.session.execute(
            text(
                f"SELECT i.warehouse, {_SUMMARY_COLUMNS}"
                " FROM inventories i LEFT OUTER JOIN parts p ON p.part_id = i.part_id"
                " WHERE i.is_active"
                " GROUP BY i.warehouse ORDER BY i.warehouse"
            )
        )
        return [dict(r._mapping) for r in results]


def is_quantity_available(
    part_id: str, warehouse: str, quantity: int, uow: unit_of_work.SqlAlchemyUnitOfWork
) -> bool:
    """Vrai si l'emplacement existe et peut couvrir `quantity` sans réservation nouvelle."""
    inventory = inventory_by_part_and_warehouse(part_id, warehouse, uow)
    return inventory is not None and inventory["available"] >= quantity


def total_on_hand_for_part(part_id: str, uow: unit_of_work.SqlAlchemyUnitOfWork) -> int:
    """Stock physique d'une pièce, tous entrepôts actifs confondus."""
    with uow:
        total = uow.session.execute(
            text(
                "SELECT COALESCE(SUM(quantity_on_hand), 0)"
                " FROM inventories WHERE part_id = :part_id AND is_active"
            ),
            dict(part_id=part_id),
        ).scalar_one()
    return int(total)


def total_available_for_part(part_id: str, uow: unit_of_work.SqlAlchemyUnitOfWork) -> int:
    """Quantité disponible d'une pièce, tous entrepôts actifs confondus."""
    with uow:
        total = uow.session.execute(
            text(
                "SELECT COALESCE(SUM(quantity_on_hand - quantity_reserved), 0)"
                " FROM inventories WHERE part_id = :part_id AND is_active"
            ),
            dict(part_id=part_id),
        ).scalar_one()
    return int(total)
