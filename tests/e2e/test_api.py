"""
Tests end-to-end de l'API Flask.

Ces tests vérifient le flux complet :
HTTP request → Flask → Message Bus → Handlers → Repository → SQLite

On utilise le test client Flask avec une base SQLite temporaire,
ce qui donne des tests rapides tout en couvrant toute la chaîne.
"""

from decimal import Decimal

import pytest

from inventory.adapters import notifications
from inventory.adapters.catalog import SqlAlchemyCatalog
from inventory.entrypoints.flask_app import app
from inventory.service_layer import bootstrap, unit_of_work


class FakeNotifications(notifications.AbstractNotifications):
    def __init__(self):
        self.envoyés = []

    def send(self, destination: str, message: str) -> None:
        self.envoyés.append({"destination": destination, "message": message})


class ConflictingUnitOfWork(unit_of_work.SqlAlchemyUnitOfWork):
    """Simule une écriture concurrente arrivée entre la lecture et le commit."""

    conflit = False

    def _commit(self) -> None:
        if self.conflit:
            self.session.rollback()
            raise unit_of_work.ConcurrencyConflict("version périmée")
        super()._commit()


@pytest.fixture
def fake_notifications():
    return FakeNotifications()


@pytest.fixture
def sqlite_bus(sqlite_session_factory, add_part, fake_notifications):
    """Crée un message bus configuré avec SQLite et un catalogue renseigné."""
    add_part(
        "piece-roulement",
        part_number="RL-6204",
        part_name="Roulement à billes",
        unit_cost=Decimal("9.90"),
        lead_time_days=5,
    )
    return bootstrap.bootstrap(
        start_orm=False,
        uow=ConflictingUnitOfWork(session_factory=sqlite_session_factory),
        notifications_adapter=fake_notifications,
        catalog=SqlAlchemyCatalog(sqlite_session_factory),
    )


@pytest.fixture
def client(sqlite_bus):
    """Client de test Flask avec le bus injecté."""
    import inventory.entrypoints.flask_app as flask_module

    original_bus = flask_module.bus
    flask_module.bus = sqlite_bus
    app.config["TESTING"] = True

    with app.test_client() as client:
        yield client

    flask_module.bus = original_bus


def ouvrir(client, warehouse="NORD", minimum=10, maximum=50) -> str:
    r = client.post("/inventory", json={
        "part_id": "piece-roulement",
        "warehouse": warehouse,
        "bin_location": "R-2-1",
        "minimum_stock_level": minimum,
        "maximum_stock_level": maximum,
    })
    assert r.status_code == 201
    return r.json["inventory_id"]


class TestCréerEmplacement:
    def test_créer_puis_consulter(self, client):
        inventory_id = ouvrir(client)

        r = client.get(f"/inventory/{inventory_id}")

        assert r.status_code == 200
        assert r.json["warehouse"] == "NORD"
        assert r.json["quantity_on_hand"] == 0
        assert r.json["is_out_of_stock"] is True

    def test_pièce_inconnue(self, client):
        r = client.post("/inventory", json={
            "part_id": "piece-inconnue",
            "warehouse": "NORD",
            "minimum_stock_level": 0,
            "maximum_stock_level": 10,
        })

        assert r.status_code == 400
        assert r.json["error"] == "UnknownPart"

    def test_doublon(self, client):
        ouvrir(client)

        r = client.post("/inventory", json={
            "part_id": "piece-roulement",
            "warehouse": "NORD",
            "minimum_stock_level": 0,
            "maximum_stock_level": 10,
        })

        assert r.status_code == 400
        assert r.json["error"] == "DuplicateLocation"

    def test_emplacement_inconnu(self, client):
        assert client.get("/inventory/inexistant").status_code == 404
        assert client.get("/inventory/inexistant/ledger").status_code == 404

        r = client.post("/inventory/inexistant/receive", json={
            "quantity": 1, "received_by": "magasinier",
        })
        assert r.status_code == 404
        assert r.json["error"] == "InventoryNotFound"


class TestMouvements:
    def test_cycle_réception_réservation_sortie(self, client, fake_notifications):
        inventory_id = ouvrir(client)

        r = client.post(f"/inventory/{inventory_id}/receive", json={
            "quantity": 12, "received_by": "magasinier", "reference_number": "BL-77",
        })
        assert r.status_code == 200
        assert r.json["quantity_on_hand"] == 12

        r = client.post(f"/inventory/{inventory_id}/reserve", json={
            "quantity": 10, "work_order_id": "OT-5", "requested_by": "tech",
        })
        assert r.json["available"] == 2

        r = client.post(f"/inventory/{inventory_id}/issue", json={
            "quantity": 10, "work_order_id": "OT-5", "issued_by": "tech",
        })
        assert r.status_code == 200
        assert r.json["quantity_on_hand"] == 2
        assert r.json["is_low_stock"] is True

        [alerte] = fake_notifications.envoyés
        assert "RL-6204 - Roulement à billes" in alerte["message"]

        r = client.get(f"/inventory/{inventory_id}/ledger")
        assert [(e["transaction_type"], e["quantity"]) for e in r.json] == [
            ("RECEIPT", 12),
            ("RESERVATION", 10),
            ("ISSUE", -10),
        ]

    def test_règle_métier_violée(self, client):
        inventory_id = ouvrir(client)

        r = client.post(f"/inventory/{inventory_id}/reserve", json={
            "quantity": 1, "work_order_id": "OT-5", "requested_by": "tech",
        })

        assert r.status_code == 400
        assert r.json["error"] == "InsufficientAvailable"

    def test_libération_et_ajustement(self, client):
        inventory_id = ouvrir(client, minimum=0)
        client.post(f"/inventory/{inventory_id}/receive", json={
            "quantity": 8, "received_by": "magasinier",
        })
        client.post(f"/inventory/{inventory_id}/reserve", json={
            "quantity": 5, "work_order_id": "OT-5", "requested_by": "tech",
        })

        r = client.post(f"/inventory/{inventory_id}/release", json={
            "quantity": 5, "work_order_id": "OT-5", "released_by": "tech",
        })
        assert r.json["quantity_reserved"] == 0

        r = client.post(f"/inventory/{inventory_id}/adjust", json={
            "new_quantity": 6, "reason": "Inventaire tournant", "adjusted_by": "chef",
        })
        assert r.json["quantity_on_hand"] == 6

    def test_conflit_de_version(self, client, sqlite_bus):
        inventory_id = ouvrir(client)
        sqlite_bus.uow.conflit = True

        r = client.post(f"/inventory/{inventory_id}/receive", json={
            "quantity": 3, "received_by": "magasinier",
        })

        assert r.status_code == 409
        assert r.json["error"] == "ConcurrencyConflict"
        sqlite_bus.uow.conflit = False
        assert client.get(f"/inventory/{inventory_id}").json["quantity_on_hand"] == 0


class TestMétadonnées:
    def test_seuils_déplacement_désactivation(self, client):
        inventory_id = ouvrir(client)

        r = client.put(f"/inventory/{inventory_id}/stock-levels", json={
            "minimum_stock_level": 1, "maximum_stock_level": 5, "reorder_quantity": 4,
        })
        assert r.json["maximum_stock_level"] == 5

        r = client.put(f"/inventory/{inventory_id}/stock-levels", json={
            "minimum_stock_level": 6, "maximum_stock_level": 5, "reorder_quantity": 4,
        })
        assert r.status_code == 400
        assert r.json["error"] == "InvalidStockLevels"

        r = client.post(f"/inventory/{inventory_id}/move", json={
            "bin_location": "Z-1-1", "moved_by": "magasinier",
        })
        assert r.json["bin_location"] == "Z-1-1"

        r = client.post(f"/inventory/{inventory_id}/deactivate")
        assert r.status_code == 200
        assert r.json["is_active"] is False

        r = client.post(f"/inventory/{inventory_id}/deactivate")
        assert r.status_code == 400
        assert r.json["error"] == "InactiveLocation"


class TestRequêtes:
    def test_stock_bas_ruptures_et_synthèse(self, client):
        bas = ouvrir(client, warehouse="NORD", minimum=10)
        client.post(f"/inventory/{bas}/receive", json={"quantity": 4, "received_by": "m"})
        vide = ouvrir(client, warehouse="SUD", minimum=0)

        r = client.get("/inventory/low-stock")
        assert r.status_code == 200
        assert [a["inventory_id"] for a in r.json] == [bas]
        assert r.json[0]["part_number"] == "RL-6204"

        r = client.get("/inventory/out-of-stock")
        assert [a["inventory_id"] for a in r.json] == [vide]

        r = client.get("/warehouses/NORD/summary")
        assert r.json["total_parts"] == 1
        assert r.json["total_quantity_on_hand"] == 4
        assert r.json["low_stock_count"] == 1

    def test_emplacements_par_pièce_et_par_entrepôt(self, client):
        sud = ouvrir(client, warehouse="SUD", minimum=0)
        nord = ouvrir(client, warehouse="NORD", minimum=0)

        r = client.get("/parts/piece-roulement/inventory")
        assert [e["inventory_id"] for e in r.json] == [nord, sud]

        r = client.get("/parts/piece-roulement/inventory/SUD")
        assert r.status_code == 200
        assert r.json["inventory_id"] == sud
        assert client.get("/parts/piece-roulement/inventory/EST").status_code == 404

        r = client.get("/warehouses/NORD/inventory")
        assert [e["inventory_id"] for e in r.json] == [nord]

        r = client.get("/warehouses/summary")
        assert [s["warehouse"] for s in r.json] == ["NORD", "SUD"]

    def test_disponibilité_et_totaux_d_une_pièce(self, client):
        nord = ouvrir(client, warehouse="NORD", minimum=0)
        client.post(f"/inventory/{nord}/receive", json={"quantity": 9, "received_by": "m"})
        client.post(f"/inventory/{nord}/reserve", json={
            "quantity": 4, "work_order_id": "OT-5", "requested_by": "tech",
        })

        r = client.get("/parts/piece-roulement/availability?warehouse=NORD&quantity=5")
        assert r.status_code == 200
        assert r.json["available"] is True
        r = client.get("/parts/piece-roulement/availability?warehouse=NORD&quantity=6")
        assert r.json["available"] is False
        r = client.get("/parts/piece-roulement/availability?warehouse=NORD&quantity=beaucoup")
        assert r.status_code == 400

        r = client.get("/parts/piece-roulement/totals")
        assert r.json == {"part_id": "piece-roulement", "quantity_on_hand": 9, "available": 5}
