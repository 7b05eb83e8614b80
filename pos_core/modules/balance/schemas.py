"""
Esquemas del resumen de caja (arqueo)
"""

from pydantic import BaseModel, Field
from decimal import Decimal
from typing import Optional, Dict
from uuid import UUID


class DrawerSummary(BaseModel):
    """Totales de una caja para el cierre y el reporte de cierre"""
    drawer_id: Optional[UUID] = Field(None, description="ID de la caja")
    opening_amount: Decimal = Field(description="Monto inicial")
    total_sales: Decimal = Field(description="Total de ventas")
    total_income: Decimal = Field(description="Total de ingresos manuales")
    total_expenses: Decimal = Field(description="Total de gastos")
    total_outflows: Decimal = Field(description="Total de egresos/retiros")
    total_payroll: Decimal = Field(description="Total sueldos")
    total_adjustments: Decimal = Field(description="Ajustes (con signo)")
    net_inflow: Decimal = Field(description="Ventas + ingresos")
    net_outflow: Decimal = Field(description="Gastos + egresos + sueldos")
    theoretical: Decimal = Field(description="Cierre teórico")
    counted: Optional[Decimal] = Field(None, description="Cierre real (contado)")
    variance: Optional[Decimal] = Field(None, description="Diferencia contado - teórico")
    movements_count: int = Field(0, description="Cantidad de movimientos")
    other_totals: Dict[str, Decimal] = Field(default_factory=dict, description="Tipos no reconocidos")
    payments_by_method: Dict[str, Decimal] = Field(default_factory=dict, description="Pagos por método")
