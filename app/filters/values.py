"""Coercition des valeurs de filtre (nombres, dates, entiers relatifs)."""

import calendar
import math
from datetime import date, datetime, timedelta

from app.filters.types import FilterOperator

# Fenêtre maximale des opérateurs last_n_*: un siècle, quelle que soit l'unité.
RELATIVE_AMOUNT_LIMITS: dict[FilterOperator, int] = {
    FilterOperator.LAST_N_DAYS: 36500,
    FilterOperator.LAST_N_MONTHS: 1200,
    FilterOperator.LAST_N_YEARS: 100,
}


def is_empty(value) -> bool:
    """Valeur absente au sens du tiroir de filtres: None ou chaîne vide."""
    if value is None:
        return True
    return isinstance(value, str) and not value.strip()


def parse_number(value) -> float | None:
    """Nombre fini, ou None (`inf` et `nan` ne sont pas des valeurs de filtre)."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int | float):
        try:
            number = float(value)
        except OverflowError:
            return None
    else:
        try:
            number = float(str(value).strip().replace(",", "."))
        except ValueError:
            return None
    return number if math.isfinite(number) else None


def parse_date(value) -> date | None:
    """Accepte date, datetime ou chaîne ISO (`YYYY-MM-DD`, éventuellement suivie d'une heure)."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if len(text) < 10:
        return None
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        return None


def parse_positive_int(value) -> int | None:
    number = parse_number(value)
    if number is None or not number.is_integer() or number <= 0:
        return None
    return int(number)


def parse_relative_amount(operator: FilterOperator, value) -> int | None:
    """Entier positif dans la fenêtre autorisée pour `operator`, sinon None."""
    amount = parse_positive_int(value)
    if amount is None or amount > RELATIVE_AMOUNT_LIMITS[operator]:
        return None
    return amount


def subtract_months(day: date, months: int) -> date:
    """Recule de `months` mois en ramenant le jour à la fin du mois cible si besoin."""
    month_index = day.year * 12 + (day.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last_day))


def relative_cutoff(operator: FilterOperator, amount: int, today: date) -> date:
    """Date plancher d'un opérateur last_n_days/months/years."""
    if operator == FilterOperator.LAST_N_DAYS:
        return today - timedelta(days=amount)
    if operator == FilterOperator.LAST_N_MONTHS:
        return subtract_months(today, amount)
    if operator == FilterOperator.LAST_N_YEARS:
        return subtract_months(today, amount * 12)
    raise ValueError(f"Opérateur non relatif: {operator}")


def normalize_text(value) -> str:
    """Même transformation que `lower(trim(...))` côté PostgreSQL."""
    return str(value).strip().lower()
