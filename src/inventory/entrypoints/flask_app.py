"""
Point d'entrée Flask.

L'API Flask est un thin adapter : elle se contente de
convertir les requêtes HTTP en commands, les envoie au
message bus, et convertit les résultats en réponses HTTP.

L'API ne contient aucune logique métier.
"""

from __future__ import annotations

from dataclasses import asdict

from flask import Flask, jsonify, request

from inventory import config
from inventory.domain import commands, model
from inventory.service_layer import bootstrap, handlers, unit_of_work
from inventory.views import views

config.configure_logging()

app = Flask(__name__)
bus = bootstrap.bootstrap()


@app.errorhandler(model.InventoryError)
def inventory_error(e: model.InventoryError):
    """Erreurs de validation de l'agrégat : l'appelant distingue la cause par son nom."""
    return jsonify({"error": type(e).__name__, "message": str(e)}), 400


@app.errorhandler(handlers.InventoryNotFound)
def not_found(e: handlers.InventoryNotFound):
    return jsonify({"error": type(e).__name__, "message": str(e)}), 404


@app.errorhandler(handlers.UnknownPart)
@app.errorhandler(handlers.DuplicateLocation)
def bad_reference(e: Exception):
    return jsonify({"error": type(e).__name__, "message": str(e)}), 400


@app.errorhandler(unit_of_work.ConcurrencyConflict)
def conflict(e: unit_of_work.ConcurrencyConflict):
    return jsonify({"error": type(e).__name__, "message": str(e)}), 409


def _snapshot_response(cmd: commands.Command):
    snapshot = bus.handle(cmd).pop(0)
    return jsonify(asdict(snapshot)), 200


@app.route("/inventory", methods=["POST"])
def create_inventory_endpoint():
    """
    POST /inventory
    Body JSON : { part_id, warehouse, bin_location, minimum_stock_level,
                  maximum_stock_level, reorder_quantity? }
    """
    data = request.json
    cmd = commands.CreateInventory(
        part_id=data["part_id"],
        warehouse=data["warehouse"],
        bin_location=data.get("bin_location", ""),
        minimum_stock_level=data["minimum_stock_level"],
        maximum_stock_level=data["maximum_stock_level"],
        reorder_quantity=data.get("reorder_quantity"),
    )
    inventory_id = bus.handle(cmd).pop(0)
    return jsonify({"inventory_id": inventory_id}), 201


@app.route("/inventory/<inventory_id>", methods=["GET"])
def inventory_endpoint(inventory_id: str):
    result = views.inventory_detail(inventory_id, bus.uow)
    if result is None:
        return "not found", 404
    return jsonify(result), 200


@app.route("/inventory/<inventory_id>/ledger", methods=["GET"])
def ledger_endpoint(inventory_id: str):
    if views.inventory_detail(inventory_id, bus.uow) is None:
        return "not found", 404
    return jsonify(views.ledger_history(inventory_id, bus.uow)), 200


@app.route("/inventory/<inventory_id>/reserve", methods=["POST"])
def reserve_endpoint(inventory_id: str):
    """Body JSON : { quantity, work_order_id, requested_by }"""
    data = request.json
    return _snapshot_response(commands.ReserveParts(
        inventory_id=inventory_id,
        quantity=data["quantity"],
        work_order_id=data["work_order_id"],
        requested_by=data["requested_by"],
    ))


@app.route("/inventory/<inventory_id>/release", methods=["POST"])
def release_endpoint(inventory_id: str):
    data = request.json
    return _snapshot_response(commands.ReleaseReservation(
        inventory_id=inventory_id,
        quantity=data["quantity"],
        work_order_id=data["work_order_id"],
        released_by=data["released_by"],
    ))


@app.route("/inventory/<inventory_id>/issue", methods=["POST"])
def issue_endpoint(inventory_id: str):
    data = request.json
    return _snapshot_response(commands.IssueParts(
        inventory_id=inventory_id,
        quantity=data["quantity"],
        work_order_id=data["work_order_id"],
        issued_by=data["issued_by"],
    ))


@app.route("/inventory/<inventory_id>/receive", methods=["POST"])
def receive_endpoint(inventory_id: str):
    data = request.json
    return _snapshot_response(commands.ReceiveParts(
        inventory_id=inventory_id,
        quantity=data["quantity"],
        received_by=data["received_by"],
        reference_number=data.get("reference_number", ""),
    ))


@app.route("/inventory/<inventory_id>/adjust", methods=["POST"])
def adjust_endpoint(inventory_id: str):
    data = request.json
    return _snapshot_response(commands.AdjustQuantity(
        inventory_id=inventory_id,
        new_quantity=data["new_quantity"],
        reason=data["reason"],
        adjusted_by=data["adjusted_by"],
    ))


@app.route("/inventory/<inventory_id>/stock-levels", methods=["PUT"])
def stock_levels_endpoint(inventory_id: str):
    data = request.json
    return _snapshot_response(commands.UpdateStockLevels(
        inventory_id=inventory_id,
        minimum_stock_level=data["minimum_stock_level"],
        maximum_stock_level=data["maximum_stock_level"],
        reorder_quantity=data["reorder_quantity"],
    ))


@app.route("/inventory/<inventory_id>/move", methods=["POST"])
def move_endpoint(inventory_id: str):
    data = request.json
    return _snapshot_response(commands.MoveToBinLocation(
        inventory_id=inventory_id,
        bin_location=data["bin_location"],
        moved_by=data["moved_by"],
    ))


@app.route("/inventory/<inventory_id>/deactivate", methods=["POST"])
def deactivate_endpoint(inventory_id: str):
    return _snapshot_response(commands.Deactivate(inventory_id=inventory_id))


@app.route("/inventory/low-stock", methods=["GET"])
def low_stock_endpoint():
    return jsonify(views.low_stock_alerts(bus.uow)), 200


@app.route("/inventory/out-of-stock", methods=["GET"])
def out_of_stock_endpoint():
    return jsonify(views.out_of_stock(bus.uow)), 200


@app.route("/warehouses/<warehouse>/summary", methods=["GET"])
def warehouse_summary_endpoint(warehouse: str):
    return jsonify(views.warehouse_summary(warehouse, bus.uow)), 200


@app.route("/warehouses/summary", methods=["GET"])
def warehouse_summaries_endpoint():
    return jsonify(views.warehouse_summaries(bus.uow)), 200


@app.route("/warehouses/<warehouse>/inventory", methods=["GET"])
def warehouse_inventory_endpoint(warehouse: str):
    return jsonify(views.inventory_by_warehouse(warehouse, bus.uow)), 200


@app.route("/parts/<part_id>/inventory", methods=["GET"])
def part_inventory_endpoint(part_id: str):
    return jsonify(views.inventory_by_part(part_id, bus.uow)), 200


@app.route("/parts/<part_id>/inventory/<warehouse>", methods=["GET"])
def part_warehouse_inventory_endpoint(part_id: str, warehouse: str):
    result = views.inventory_by_part_and_warehouse(part_id, warehouse, bus.uow)
    if result is None:
        return "not found", 404
    return jsonify(result), 200


@app.route("/parts/<part_id>/availability", methods=["GET"])
def availability_endpoint(part_id: str):
    """GET /parts/<part_id>/availability?warehouse=...&quantity=..."""
    warehouse = request.args["warehouse"]
    quantity = request.args.get("quantity", type=int)
    if quantity is None:
        return jsonify({"error": "InvalidQuantity", "message": "quantity entier requis"}), 400
    available = views.is_quantity_available(part_id, warehouse, quantity, bus.uow)
    return jsonify({"part_id": part_id, "warehouse": warehouse,
                    "quantity": quantity, "available": available}), 200


@app.route("/parts/<part_id>/totals", methods=["GET"])
def part_totals_endpoint(part_id: str):
    return jsonify({
        "part_id": part_id,
        "quantity_on_hand": views.total_on_hand_for_part(part_id, bus.uow),
        "available": views.total_available_for_part(part_id, bus.uow),
    }), 200
