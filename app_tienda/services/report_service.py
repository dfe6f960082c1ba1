# ==============================================================================
# SERVICIO DE REPORTES
# ==============================================================================
# Resumen financiero del panel, desglose de ventas por período y
# exportación de ventas a CSV.
# ==============================================================================

import csv
import io
from collections import defaultdict
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple

from app_tienda.models import Product, Sale, SaleType
from app_tienda.performance_logger import profile_function
from app_tienda.repositories.interfaces import (
    ICustomerRepository,
    IProductRepository,
    ISalesRepository,
)


CSV_HEADER = [
    'sale_id', 'date', 'type', 'status', 'client_name', 'product_id', 'name',
    'quantity', 'unit_price', 'line_total', 'discount', 'total', 'remaining_balance',
]


def _parse_date(date_str: str) -> Optional[datetime]:
    """Fecha ISO a datetime con zona horaria (UTC si no trae). None si no es válida."""
    if not date_str:
        return None
    try:
        parsed = datetime.fromisoformat(str(date_str).replace('Z', '+00:00'))
    except (ValueError, TypeError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def get_date_range(period: str, custom_start: str = None, custom_end: str = None) -> Tuple[datetime, datetime]:
    """
    Rango de fechas de un período.

    Args:
        period: 'today', 'week', 'month' o 'custom'
        custom_start: Fecha inicio (YYYY-MM-DD) si period='custom'
        custom_end: Fecha fin (YYYY-MM-DD) si period='custom'

    Returns:
        Tupla (inicio, fin) en UTC. Un período desconocido equivale a 'today'.
    """
    now = datetime.now(timezone.utc)
    today_start = now.replace(hour=0, minute=0, second=0, microsecond=0)
    # Hasta el final del día: las ventas con fecha de hoy se guardan a mediodía
    today_end = now.replace(hour=23, minute=59, second=59, microsecond=999999)

    if period == 'week':
        return today_start - timedelta(days=now.weekday()), today_end
    if period == 'month':
        return today_start.replace(day=1), today_end
    if period == 'custom' and custom_start and custom_end:
        try:
            start = datetime.strptime(custom_start, '%Y-%m-%d').replace(tzinfo=timezone.utc)
            end = datetime.strptime(custom_end, '%Y-%m-%d').replace(
                hour=23, minute=59, second=59, tzinfo=timezone.utc
            )
            return start, end
        except ValueError:
            return today_start, today_end
    return today_start, today_end


class ReportService:
    """
    Servicio de reportes financieros.

    No escribe nada: solo lee productos, ventas y clientes.
    """

    def __init__(
        self,
        product_repo: IProductRepository,
        sales_repo: ISalesRepository,
        customer_repo: ICustomerRepository
    ):
        self.product_repo = product_repo
        self.sales_repo = sales_repo
        self.customer_repo = customer_repo

    def _sale_profit(self, sale: Sale, products: Dict[str, Product]) -> float:
        """
        Ganancia de una venta. Ventas antiguas sin ganancia guardada
        se recalculan con el costo actual de los productos.
        """
        if sale.profit > 0:
            return sale.profit
        cost = sum(
            (products[i.product_id].cost_price if i.product_id in products else 0.0) * i.quantity
            for i in sale.items
        )
        return sale.total - cost

    @profile_function(name="Resumen financiero")
    def financial_summary(self) -> Dict[str, float]:
        """
        Returns:
            {
                'inventory_value': float,      # suma de costo x stock
                'total_sales': float,          # suma de totales vendidos
                'total_profit': float,
                'pending_receivables': float,  # suma de deudas de clientes
            }
        """
        products = {p['id']: Product.from_dict(p) for p in self.product_repo.list_all()}
        sales = [Sale.from_dict(s) for s in self.sales_repo.list_all()]

        inventory_value = sum(p.cost_price * p.stock for p in products.values())
        total_sales = sum(s.total for s in sales)
        total_profit = sum(self._sale_profit(s, products) for s in sales)
        pending = sum(float(c.get('balance', 0) or 0) for c in self.customer_repo.list_all())

        return {
            'inventory_value': round(inventory_value, 2),
            'total_sales': round(total_sales, 2),
            'total_profit': round(total_profit, 2),
            'pending_receivables': round(pending, 2),
        }

    def sales_breakdown(
        self,
        period: str = 'today',
        custom_start: str = None,
        custom_end: str = None
    ) -> Dict[str, Any]:
        """
        Ventas del período con totales, desglose diario y productos más vendidos.
        """
        start, end = get_date_range(period, custom_start, custom_end)
        products = {p['id']: Product.from_dict(p) for p in self.product_repo.list_all()}

        summary = {
            'sales_count': 0,
            'items_sold': 0,
            'gross_income': 0.0,
            'total_cost': 0.0,
            'net_profit': 0.0,
            'cash_income': 0.0,
            'credit_income': 0.0,
            'collected': 0.0,
        }
        daily = defaultdict(lambda: {'income': 0.0, 'profit': 0.0, 'count': 0})
        by_product = defaultdict(lambda: {'qty': 0, 'income': 0.0})

        for data in self.sales_repo.list_all():
            sale = Sale.from_dict(data)

            # Abonos recibidos dentro del período (de cualquier venta)
            for payment in sale.payments:
                paid_at = _parse_date(payment.date)
                if paid_at and start <= paid_at <= end:
                    summary['collected'] += payment.amount

            sale_date = _parse_date(sale.date)
            if not sale_date or not start <= sale_date <= end:
                continue

            profit = self._sale_profit(sale, products)
            summary['sales_count'] += 1
            summary['gross_income'] += sale.total
            summary['total_cost'] += sale.cost_total
            summary['net_profit'] += profit
            if sale.type == SaleType.CREDIT.value:
                summary['credit_income'] += sale.total
            else:
                summary['cash_income'] += sale.total

            day = daily[sale_date.strftime('%Y-%m-%d')]
            day['income'] += sale.total
            day['profit'] += profit
            day['count'] += 1

            for item in sale.items:
                summary['items_sold'] += item.quantity
                by_product[item.name]['qty'] += item.quantity
                by_product[item.name]['income'] += item.line_total

        top_products = sorted(
            ({'name': name, 'qty': d['qty'], 'income': round(d['income'], 2)} for name, d in by_product.items()),
            key=lambda p: (-p['qty'], p['name'])
        )[:10]

        return {
            'period': period,
            'date_range': {'start': start.strftime('%Y-%m-%d'), 'end': end.strftime('%Y-%m-%d')},
            'summary': {k: (round(v, 2) if isinstance(v, float) else v) for k, v in summary.items()},
            'daily_breakdown': [
                {'date': date, 'income': round(d['income'], 2), 'profit': round(d['profit'], 2), 'count': d['count']}
                for date, d in sorted(daily.items())
            ],
            'top_products': top_products,
        }

    def export_sales_csv(
        self,
        from_date: Optional[str] = None,
        to_date: Optional[str] = None,
        sale_type: Optional[str] = None
    ) -> str:
        """
        CSV de ventas, una fila por ítem. Fechas 'YYYY-MM-DD' inclusivas.
        """
        si = io.StringIO()
        writer = csv.writer(si)
        writer.writerow(CSV_HEADER)

        sales: List[Dict[str, Any]] = sorted(self.sales_repo.list_all(), key=lambda s: s.get('date', ''))
        for data in sales:
            day = (data.get('date') or '')[:10]
            if from_date and day < from_date[:10]:
                continue
            if to_date and day > to_date[:10]:
                continue
            if sale_type and data.get('type') != sale_type:
                continue
            sale = Sale.from_dict(data)
            for item in sale.items:
                writer.writerow([
                    sale.id, sale.date, sale.type, sale.status, sale.client_name,
                    item.product_id, item.name, item.quantity,
                    f'{item.unit_price:.2f}', f'{item.line_total:.2f}',
                    f'{sale.discount:.2f}', f'{sale.total:.2f}', f'{sale.remaining_balance:.2f}',
                ])
        return si.getvalue()
