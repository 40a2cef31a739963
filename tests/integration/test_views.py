"""
Tests des views (côté lecture CQRS).

Les écritures passent par le message bus, les lectures
interrogent directement la base.
"""

from decimal import Decimal

import pytest

from inventory.adapters import notifications
from inventory.adapters.catalog import SqlAlchemyCatalog
from inventory.domain import commands
from inventory.service_layer import bootstrap, unit_of_work
from inventory.views import views


class FakeNotifications(notifications.AbstractNotifications):
    def __init__(self):
        self.envoyées = []

    def send(self, destination: str, message: str) -> None:
        self.envoyées.append((destination, message))


@pytest.fixture
def bus(sqlite_session_factory, add_part):
    add_part(
        "piece-joint", part_number="JT-10", part_name="Joint torique", unit_cost=Decimal("2.50")
    )
    add_part("piece-palier", part_number="PL-20", part_name="Palier", unit_cost=Decimal("30.00"))
    return bootstrap.bootstrap(
        start_orm=False,
        uow=unit_of_work.SqlAlchemyUnitOfWork(sqlite_session_factory),
        notifications_adapter=FakeNotifications(),
        catalog=SqlAlchemyCatalog(sqlite_session_factory),
    )


def ouvrir(bus, part_id, warehouse, minimum, maximum, stock=0):
    [inventory_id] = bus.handle(
        commands.CreateInventory(part_id, warehouse, "A-1", minimum, maximum)
    )
    if stock:
        bus.handle(commands.ReceiveParts(inventory_id, stock, "magasinier"))
    return inventory_id


def test_détail_d_un_emplacement(bus):
    inventory_id = ouvrir(bus, "piece-joint", "NORD", 10, 50, stock=12)
    bus.handle(commands.ReserveParts(inventory_id, 5, "OT-1", "tech"))

    détail = views.inventory_detail(inventory_id, bus.uow)

    assert détail["quantity_on_hand"] == 12
    assert détail["quantity_reserved"] == 5
    assert détail["available"] == 7
    assert détail["is_active"] is True
    assert détail["is_low_stock"] is False
    assert détail["version_number"] == 2


def test_détail_inconnu(bus):
    assert views.inventory_detail("inconnu", bus.uow) is None


def test_historique_du_journal(bus):
    inventory_id = ouvrir(bus, "piece-joint", "NORD", 10, 50, stock=12)
    bus.handle(commands.ReserveParts(inventory_id, 5, "OT-1", "tech"))
    bus.handle(commands.IssueParts(inventory_id, 5, "OT-1", "tech"))

    historique = views.ledger_history(inventory_id, bus.uow)

    assert [(h["transaction_type"], h["quantity"]) for h in historique] == [
        ("RECEIPT", 12),
        ("RESERVATION", 5),
        ("ISSUE", -5),
    ]
    assert historique[1]["work_order_id"] == "OT-1"


def test_alertes_de_stock_bas_enrichies(bus):
    bas = ouvrir(bus, "piece-joint", "NORD", 10, 50, stock=3)
    ouvrir(bus, "piece-palier", "NORD", 2, 10, stock=5)

    alertes = views.low_stock_alerts(bus.uow)

    assert [a["inventory_id"] for a in alertes] == [bas]
    [alerte] = alertes
    assert alerte["part_number"] == "JT-10"
    assert alerte["current_quantity"] == 3
    assert alerte["reorder_quantity"] == 47


def test_ruptures_de_stock(bus):
    vide = ouvrir(bus, "piece-joint", "NORD", 0, 50)
    ouvrir(bus, "piece-palier", "NORD", 0, 10, stock=1)

    assert [r["inventory_id"] for r in views.out_of_stock(bus.uow)] == [vide]


def test_synthèse_d_un_entrepôt(bus):
    joint = ouvrir(bus, "piece-joint", "NORD", 10, 50, stock=4)
    ouvrir(bus, "piece-palier", "NORD", 1, 10, stock=2)
    ouvrir(bus, "piece-joint", "SUD", 0, 10)
    bus.handle(commands.ReserveParts(joint, 1, "OT-1", "tech"))

    synthèse = views.warehouse_summary("NORD", bus.uow)

    assert synthèse["warehouse"] == "NORD"
    assert synthèse["total_parts"] == 2
    assert synthèse["total_quantity_on_hand"] == 6
    assert synthèse["total_quantity_reserved"] == 1
    assert synthèse["total_available"] == 5
    assert synthèse["low_stock_count"] == 1
    assert synthèse["out_of_stock_count"] == 0
    assert Decimal(str(synthèse["total_inventory_value"])) == Decimal("70.00")


def test_disponible_tous_entrepôts(bus):
    ouvrir(bus, "piece-joint", "NORD", 0, 50, stock=4)
    sud = ouvrir(bus, "piece-joint", "SUD", 0, 50, stock=6)
    bus.handle(commands.ReserveParts(sud, 2, "OT-1", "tech"))

    assert views.total_available_for_part("piece-joint", bus.uow) == 8
    assert views.total_available_for_part("piece-inconnue", bus.uow) == 0


def test_emplacements_d_une_pièce_par_entrepôt(bus):
    sud = ouvrir(bus, "piece-joint", "SUD", 0, 50, stock=6)
    nord = ouvrir(bus, "piece-joint", "NORD", 0, 50, stock=4)
    est = ouvrir(bus, "piece-joint", "EST", 0, 50)
    bus.handle(commands.Deactivate(est))
    ouvrir(bus, "piece-palier", "NORD", 0, 10)

    emplacements = views.inventory_by_part("piece-joint", bus.uow)

    assert [e["inventory_id"] for e in emplacements] == [nord, sud]
    assert views.inventory_by_part("piece-inconnue", bus.uow) == []


def test_emplacement_par_pièce_et_entrepôt(bus):
    nord = ouvrir(bus, "piece-joint", "NORD", 10, 50, stock=4)

    trouvé = views.inventory_by_part_and_warehouse("piece-joint", "NORD", bus.uow)

    assert trouvé["inventory_id"] == nord
    assert trouvé["is_low_stock"] is True
    assert views.inventory_by_part_and_warehouse("piece-joint", "SUD", bus.uow) is None


def test_emplacements_d_un_entrepôt_par_casier(bus):
    [palier] = bus.handle(commands.CreateInventory("piece-palier", "NORD", "Z-9", 0, 10))
    [joint] = bus.handle(commands.CreateInventory("piece-joint", "NORD", "B-3", 0, 10))
    ouvrir(bus, "piece-joint", "SUD", 0, 10)

    emplacements = views.inventory_by_warehouse("NORD", bus.uow)

    assert [(e["inventory_id"], e["bin_location"]) for e in emplacements] == [
        (joint, "B-3"),
        (palier, "Z-9"),
    ]


def test_synthèse_de_tous_les_entrepôts(bus):
    ouvrir(bus, "piece-joint", "NORD", 10, 50, stock=4)
    ouvrir(bus, "piece-palier", "NORD", 1, 10, stock=2)
    ouvrir(bus, "piece-joint", "SUD", 0, 10)

    synthèses = views.warehouse_summaries(bus.uow)

    assert [s["warehouse"] for s in synthèses] == ["NORD", "SUD"]
    nord, sud = synthèses
    assert (nord["total_parts"], nord["total_quantity_on_hand"]) == (2, 6)
    assert nord["low_stock_count"] == 1
    assert (sud["total_parts"], sud["out_of_stock_count"]) == (1, 1)
    assert Decimal(str(nord["total_inventory_value"])) == Decimal("70.00")


def test_quantité_disponible(bus):
    nord = ouvrir(bus, "piece-joint", "NORD", 0, 50, stock=10)
    bus.handle(commands.ReserveParts(nord, 4, "OT-1", "tech"))

    assert views.is_quantity_available("piece-joint", "NORD", 6, bus.uow) is True
    assert views.is_quantity_available("piece-joint", "NORD", 7, bus.uow) is False
    assert views.is_quantity_available("piece-joint", "SUD", 1, bus.uow) is False


def test_stock_physique_tous_entrepôts(bus):
    ouvrir(bus, "piece-joint", "NORD", 0, 50, stock=4)
    sud = ouvrir(bus, "piece-joint", "SUD", 0, 50, stock=6)
    bus.handle(commands.ReserveParts(sud, 2, "OT-1", "tech"))
    vide = ouvrir(bus, "piece-joint", "EST", 0, 50)
    bus.handle(commands.Deactivate(vide))

    assert views.total_on_hand_for_part("piece-joint", bus.uow) == 10
    assert views.total_on_hand_for_part("piece-inconnue", bus.uow) == 0
