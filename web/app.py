"""Flask web application for fleet deadline tracking."""

import logging
import os
from datetime import date
from typing import Optional

from dotenv import load_dotenv
from flask import Flask, abort, flash, redirect, render_template, request, url_for

from fleet import (
    CHECK_ORDER,
    RECORD_TYPES,
    Category,
    MaintenanceRecord,
    Severity,
    Status,
    Vehicle,
    VehicleNotFoundError,
    add_maintenance_record,
    aggregate,
    calc_next_annual_review,
    create_vehicle,
    delete_vehicle,
    get_vehicle,
    load_fleet,
    parse_date,
    update_deadline,
    update_vehicle,
)
from fleet.config import fleet_dir_from_env
from fleet.loader import vehicle_to_dict

load_dotenv()
logger = logging.getLogger(__name__)

app = Flask(__name__)
app.secret_key = os.environ.get("SECRET_KEY", "dev-secret-key-change-in-prod")
app.config["FLEET_DIR"] = fleet_dir_from_env()


def fleet_dir():
    return app.config["FLEET_DIR"]


def get_today() -> date:
    """Reference date for one request, read once and passed down."""
    return date.today()


def status_color(status: Status) -> str:
    """Get Tailwind color classes for a deadline status."""
    colors = {
        Status.EXPIRED: "bg-red-100 text-red-800 border-red-200",
        Status.WARNING: "bg-yellow-100 text-yellow-800 border-yellow-200",
        Status.OK: "bg-green-100 text-green-800 border-green-200",
    }
    return colors.get(status, "bg-gray-100 text-gray-800")


def status_label(status: Status) -> str:
    labels = {
        Status.EXPIRED: "Expirada",
        Status.WARNING: "Agendar Breve",
        Status.OK: "Em dia",
    }
    return labels.get(status, "—")


def card_label(status: Status) -> str:
    """Badge text for a vehicle card, from its overall status."""
    labels = {
        Status.EXPIRED: "Ação Necessária",
        Status.WARNING: "Atenção",
        Status.OK: "Em Dia",
    }
    return labels.get(status, "—")


def severity_color(severity: Severity) -> str:
    """Get Tailwind color classes for an alert banner."""
    if severity == Severity.DANGER:
        return "bg-red-50 border-red-200 text-red-800"
    return "bg-yellow-50 border-yellow-200 text-yellow-800"


def format_date(value):
    """Format an ISO date for display (dd/mm/yyyy)."""
    parsed = parse_date(value)
    if parsed is None:
        return "—"
    return parsed.strftime("%d/%m/%Y")


def format_km(km):
    """Format km with thousands separator."""
    if km is None:
        return "—"
    return f"{km:,.0f} km".replace(",", " ")


# Register template filters
app.jinja_env.filters["status_color"] = status_color
app.jinja_env.filters["status_label"] = status_label
app.jinja_env.filters["card_label"] = card_label
app.jinja_env.filters["severity_color"] = severity_color
app.jinja_env.filters["format_date"] = format_date
app.jinja_env.filters["format_km"] = format_km


def load_or_404(vehicle_id: str) -> Vehicle:
    try:
        return get_vehicle(fleet_dir(), vehicle_id)
    except (VehicleNotFoundError, ValueError):
        abort(404)


@app.route("/")
def index():
    """Dashboard: alert count, alert banners and vehicle cards."""
    today = get_today()
    vehicles = load_fleet(fleet_dir())
    alerts = aggregate(vehicles, today)

    cards = [
        {"vehicle": v, "status": v.overall_status(today)}
        for v in vehicles
    ]

    return render_template(
        "index.html",
        alerts=alerts,
        alerts_count=len(alerts),
        cards=cards,
        active_count=sum(1 for v in vehicles if v.status == "active"),
        maintenance_count=sum(1 for v in vehicles if v.status == "maintenance"),
        Severity=Severity,
        today=today,
    )


@app.route("/fleet")
def fleet_list():
    """Fleet list with a status dot per deadline."""
    today = get_today()
    vehicles = load_fleet(fleet_dir())
    alerts_count = len(aggregate(vehicles, today))

    query = request.args.get("q", "").strip().lower()
    if query:
        vehicles = [
            v for v in vehicles
            if query in v.name.lower() or query in (v.plate or "").lower()
        ]

    rows = [
        {"vehicle": v, "statuses": v.deadline_statuses(today)}
        for v in vehicles
    ]
    return render_template(
        "fleet.html",
        rows=rows,
        categories=CHECK_ORDER,
        query=query,
        alerts_count=alerts_count,
    )


@app.route("/vehicle/<vehicle_id>")
def vehicle_detail(vehicle_id: str):
    """Vehicle detail page with deadlines and history."""
    today = get_today()
    vehicle = load_or_404(vehicle_id)

    deadlines = [
        {
            "category": c,
            "date": vehicle.deadline_date(c),
            "status": vehicle.deadline_status(c, today),
            "message": vehicle.deadline_message(c, today),
        }
        for c in CHECK_ORDER
    ]

    return render_template(
        "vehicle.html",
        vehicle=vehicle,
        deadlines=deadlines,
        history=vehicle.get_history_sorted(),
        record_types=RECORD_TYPES,
        Status=Status,
        today=today,
    )


@app.route("/vehicle/<vehicle_id>/renew", methods=["POST"])
def renew_deadline(vehicle_id: str):
    """Mark a deadline as done by setting its next due date."""
    load_or_404(vehicle_id)
    try:
        category = Category.parse(request.form.get("category", ""))
    except ValueError as e:
        flash(str(e), "error")
        return redirect(url_for("vehicle_detail", vehicle_id=vehicle_id))

    new_date = parse_date(request.form.get("date"), field="date")
    if new_date is None:
        flash("Indique uma data válida", "error")
        return redirect(url_for("vehicle_detail", vehicle_id=vehicle_id))

    update_deadline(fleet_dir(), vehicle_id, category, new_date)
    flash(f"{category.label}: próximo vencimento {format_date(new_date)}", "success")
    return redirect(url_for("vehicle_detail", vehicle_id=vehicle_id))


@app.route("/vehicle/<vehicle_id>/log", methods=["POST"])
def log_record(vehicle_id: str):
    """Handle new maintenance record form submission."""
    vehicle = load_or_404(vehicle_id)

    km = request.form.get("km")
    cost = request.form.get("cost")
    next_service_km = request.form.get("nextServiceKm")
    try:
        record = MaintenanceRecord(
            date=request.form.get("date") or get_today().isoformat(),
            type=request.form.get("type", ""),
            service=request.form.get("service", "").strip(),
            km=int(km) if km else vehicle.km,
            garage=request.form.get("garage") or None,
            cost=float(cost) if cost else None,
        )
        add_maintenance_record(
            fleet_dir(),
            vehicle_id,
            record,
            next_service_km=int(next_service_km) if next_service_km else None,
        )
    except ValueError as e:
        flash(f"Registo inválido: {e}", "error")
        return redirect(url_for("vehicle_detail", vehicle_id=vehicle_id))

    flash(f"Registo adicionado: {record.type}", "success")
    return redirect(url_for("vehicle_detail", vehicle_id=vehicle_id))


@app.route("/vehicle/<vehicle_id>/delete", methods=["POST"])
def remove_vehicle(vehicle_id: str):
    """Delete a vehicle and its history."""
    vehicle = load_or_404(vehicle_id)
    delete_vehicle(fleet_dir(), vehicle_id)
    flash(f"Veículo removido: {vehicle.display_name}", "success")
    return redirect(url_for("fleet_list"))


DATE_FIELDS = (
    "nextInspectionDate",
    "nextIucDate",
    "lastAnnualReviewDate",
    "nextAnnualReviewDate",
    "nextServiceDate",
)


def form_date(form, name: str) -> Optional[str]:
    """A date field from the vehicle form; blank is None, anything but YYYY-MM-DD is rejected."""
    value = (form.get(name) or "").strip()
    if not value:
        return None
    if parse_date(value, field=name) is None:
        raise ValueError(f"Data inválida em {name}: '{value}' (esperado AAAA-MM-DD)")
    return value


def vehicle_from_form(form, existing: Optional[Vehicle] = None) -> Vehicle:
    """Build a Vehicle from the add/edit form. Raises ValueError on bad input."""
    if not form.get("make") or not form.get("model") or not form.get("plate"):
        raise ValueError("Marca, modelo e matrícula são obrigatórios")

    dates = {name: form_date(form, name) for name in DATE_FIELDS}
    next_annual = dates["nextAnnualReviewDate"]
    if next_annual is None and dates["lastAnnualReviewDate"] is not None:
        next_annual = calc_next_annual_review(parse_date(dates["lastAnnualReviewDate"])).isoformat()

    return Vehicle(
        id=existing.id if existing else form.get("id") or os.urandom(6).hex(),
        make=form["make"],
        model=form["model"],
        year=int(form["year"]) if form.get("year") else None,
        plate=form["plate"],
        vin=form.get("vin", ""),
        fuel=form.get("fuel", ""),
        engine=form.get("engine", ""),
        power=form.get("power", ""),
        tires=form.get("tires", ""),
        color=form.get("color", ""),
        image=form.get("image") or (existing.image if existing else ""),
        km=int(form["km"]) if form.get("km") else 0,
        status=form.get("status") or "active",
        type=existing.type if existing else None,
        next_inspection_date=dates["nextInspectionDate"],
        next_iuc_date=dates["nextIucDate"],
        next_service_km=int(form["nextServiceKm"]) if form.get("nextServiceKm") else None,
        next_service_date=dates["nextServiceDate"],
        last_annual_review_date=dates["lastAnnualReviewDate"],
        next_annual_review_date=next_annual,
        history=existing.history if existing else None,
    )


@app.route("/vehicle/new", methods=["GET"])
def new_vehicle_form():
    return render_template("vehicle_form.html", form={}, vehicle=None)


@app.route("/vehicle/new", methods=["POST"])
def new_vehicle():
    """Handle add vehicle form submission."""
    form = request.form
    try:
        vehicle = vehicle_from_form(form)
        create_vehicle(fleet_dir(), vehicle)
    except ValueError as e:
        flash(f"Veículo inválido: {e}", "error")
        return render_template("vehicle_form.html", form=form, vehicle=None), 400

    flash(f"Veículo adicionado: {vehicle.display_name}", "success")
    return redirect(url_for("vehicle_detail", vehicle_id=vehicle.id))


@app.route("/vehicle/<vehicle_id>/edit", methods=["GET"])
def edit_vehicle_form(vehicle_id: str):
    vehicle = load_or_404(vehicle_id)
    form = {k: v for k, v in vehicle_to_dict(vehicle).items() if v is not None}
    return render_template("vehicle_form.html", form=form, vehicle=vehicle)


@app.route("/vehicle/<vehicle_id>/edit", methods=["POST"])
def edit_vehicle(vehicle_id: str):
    """Handle edit vehicle form submission. History is kept as is."""
    existing = load_or_404(vehicle_id)
    form = request.form
    try:
        vehicle = vehicle_from_form(form, existing)
        update_vehicle(fleet_dir(), vehicle)
    except ValueError as e:
        flash(f"Veículo inválido: {e}", "error")
        return render_template("vehicle_form.html", form=form, vehicle=existing), 400

    flash(f"Veículo atualizado: {vehicle.display_name}", "success")
    return redirect(url_for("vehicle_detail", vehicle_id=vehicle.id))


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    # Using 5001 to avoid conflict with macOS AirPlay Receiver on 5000
    app.run(debug=True, host="0.0.0.0", port=int(os.environ.get("PORT", 5001)))
