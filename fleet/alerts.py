"""Alert aggregation across the fleet."""

from dataclasses import dataclass
from datetime import date
from typing import Iterable, List

from .calculations import classify
from .category import CHECK_ORDER, Category
from .status import Severity, Status
from .vehicle import Vehicle

_TITLES = {
    (Category.INSPECTION, Severity.DANGER): "Inspeção Expirada",
    (Category.INSPECTION, Severity.WARNING): "Inspeção Brevemente",
    (Category.IUC, Severity.DANGER): "Selo (IUC) em Atraso",
    (Category.IUC, Severity.WARNING): "Pagamento IUC Brevemente",
    (Category.ANNUAL_REVIEW, Severity.DANGER): "Revisão Anual Expirada",
    (Category.ANNUAL_REVIEW, Severity.WARNING): "Revisão Anual Brevemente",
}

_SUBJECTS = {
    Category.INSPECTION: "A inspeção",
    Category.IUC: "O IUC",
    Category.ANNUAL_REVIEW: "A revisão anual",
}

_ICONS = {
    (Category.INSPECTION, Severity.DANGER): "gpp_maybe",
    (Category.INSPECTION, Severity.WARNING): "warning",
    (Category.IUC, Severity.DANGER): "receipt_long",
    (Category.IUC, Severity.WARNING): "payments",
    (Category.ANNUAL_REVIEW, Severity.DANGER): "calendar_clock",
    (Category.ANNUAL_REVIEW, Severity.WARNING): "calendar_clock",
}


@dataclass
class Alert:
    """A deadline that needs attention, ready for display."""

    id: str
    vehicle: Vehicle
    category: Category
    severity: Severity
    title: str
    message: str
    icon: str
    date: date


def make_alert(vehicle: Vehicle, category: Category, deadline: date, status: Status) -> Alert:
    """Build the alert for a deadline classified WARNING or EXPIRED."""
    severity = Severity.DANGER if status == Status.EXPIRED else Severity.WARNING
    if severity == Severity.DANGER:
        message = (
            f"{_SUBJECTS[category]} do veículo {vehicle.display_name} "
            f"expirou em {deadline.strftime('%d/%m/%Y')}. Resolva imediatamente."
        )
    else:
        message = (
            f"{_SUBJECTS[category]} do veículo {vehicle.display_name} "
            f"vence em {deadline.strftime('%d/%m/%Y')}."
        )
    return Alert(
        id=f"{vehicle.id}-{category.value}",
        vehicle=vehicle,
        category=category,
        severity=severity,
        title=_TITLES[(category, severity)],
        message=message,
        icon=_ICONS[(category, severity)],
        date=deadline,
    )


def aggregate(vehicles: Iterable[Vehicle], today: date) -> List[Alert]:
    """
    Collect alerts for every warning or expired deadline in the fleet.

    Alerts are discovered per vehicle in iteration order, then per category
    in CHECK_ORDER. The result lists all DANGER alerts before all WARNING
    alerts, keeping discovery order within each group. Its length is the
    alert badge count.
    """
    danger: List[Alert] = []
    warning: List[Alert] = []
    for vehicle in vehicles:
        for category in CHECK_ORDER:
            deadline = vehicle.deadline_date(category)
            if deadline is None:
                continue
            status = classify(deadline, today)
            if status == Status.OK:
                continue
            alert = make_alert(vehicle, category, deadline, status)
            (danger if alert.severity == Severity.DANGER else warning).append(alert)
    return danger + warning
