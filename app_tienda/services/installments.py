# ==============================================================================
# CÁLCULO DE CUOTAS
# ==============================================================================
# Plan de cuotas de una venta al crédito: N cuotas iguales a partir de una
# fecha de inicio, espaciadas según la frecuencia. El plan se calcula una sola
# vez al vender y no se rebalancea con los pagos parciales.
# ==============================================================================

from datetime import date, datetime, time, timedelta, timezone
from typing import List, Optional, Union

from app_tienda.models import Installment, InstallmentPlan, InstallmentStatus, PaymentFrequency


# Días entre cuotas (un "mes" son 30 días fijos)
FREQUENCY_DAYS = {
    PaymentFrequency.WEEKLY.value: 7,
    PaymentFrequency.BIWEEKLY.value: 14,
    PaymentFrequency.MONTHLY.value: 30,
}

# Hora del día en que vencen las cuotas (mediodía evita saltos de fecha por zona horaria)
DUE_TIME = time(12, 0, tzinfo=timezone.utc)


def normalize_frequency(frequency: Optional[str]) -> str:
    """
    Normaliza la frecuencia aceptando sinónimos comunes.

    Raises:
        ValueError: Si la frecuencia no es reconocida
    """
    if not frequency:
        return PaymentFrequency.WEEKLY.value
    low = str(frequency).strip().lower().replace('_', '-')
    if low in ('weekly', 'semanal'):
        return PaymentFrequency.WEEKLY.value
    if low in ('bi-weekly', 'biweekly', 'quincenal'):
        return PaymentFrequency.BIWEEKLY.value
    if low in ('monthly', 'mensual'):
        return PaymentFrequency.MONTHLY.value
    raise ValueError(f'Frecuencia no válida: {frequency}')


def parse_start_date(value: Union[str, date, datetime, None]) -> datetime:
    """
    Convierte la fecha de inicio a datetime al mediodía UTC.
    Acepta 'YYYY-MM-DD', ISO completo, date o datetime. None = hoy.

    Raises:
        ValueError: Si el texto no es una fecha válida
    """
    if value is None or value == '':
        return datetime.combine(datetime.now(timezone.utc).date(), DUE_TIME)
    if isinstance(value, datetime):
        return datetime.combine(value.date(), DUE_TIME)
    if isinstance(value, date):
        return datetime.combine(value, DUE_TIME)
    text = str(value).strip()
    try:
        parsed = datetime.fromisoformat(text.replace('Z', '+00:00'))
    except ValueError:
        raise ValueError(f'Fecha no válida: {value}')
    return datetime.combine(parsed.date(), DUE_TIME)


def split_amount(total: float, count: int) -> List[float]:
    """
    Divide un total en `count` partes iguales redondeadas a céntimos.
    La última parte absorbe la diferencia de redondeo, así la suma es exacta.
    """
    count = max(1, int(count or 1))
    base = round(total / count, 2)
    parts = [base] * (count - 1)
    parts.append(round(total - base * (count - 1), 2))
    return parts


def build_installment_plan(
    total: float,
    number_of_installments: int,
    frequency: Optional[str] = None,
    start_date: Union[str, date, datetime, None] = None
) -> InstallmentPlan:
    """
    Genera el plan de cuotas de una venta al crédito.

    Args:
        total: Monto a financiar
        number_of_installments: Cantidad de cuotas (menos de 1 se toma como 1)
        frequency: Weekly, Bi-weekly o Monthly
        start_date: Vencimiento de la primera cuota

    Returns:
        InstallmentPlan con cuota i venciendo en start + i * periodo
    """
    count = max(1, int(number_of_installments or 1))
    freq = normalize_frequency(frequency)
    start = parse_start_date(start_date)
    period = timedelta(days=FREQUENCY_DAYS[freq])

    installments = [
        Installment(
            number=i + 1,
            amount=amount,
            due_date=(start + i * period).isoformat(),
            status=InstallmentStatus.PENDING.value,
        )
        for i, amount in enumerate(split_amount(total, count))
    ]
    return InstallmentPlan(
        number_of_installments=count,
        frequency=freq,
        installments=installments,
    )


def overdue_installments(plan: InstallmentPlan, now: Optional[datetime] = None) -> List[Installment]:
    """Cuotas pendientes cuyo vencimiento ya pasó."""
    now = now or datetime.now(timezone.utc)
    result = []
    for inst in plan.pending:
        try:
            due = datetime.fromisoformat(inst.due_date.replace('Z', '+00:00'))
        except ValueError:
            continue
        if due.tzinfo is None:
            due = due.replace(tzinfo=timezone.utc)
        if due < now:
            result.append(inst)
    return result
