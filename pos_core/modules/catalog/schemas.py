"""
Esquemas Pydantic del catálogo (productos y plantillas de promoción)

El catálogo entrega objetos con forma dinámica (`configuraciones`, `aplica_todos`,
`cantidad_min`...). Aquí se validan y se convierten en estructuras explícitas,
de modo que el motor de promociones nunca trabaja con diccionarios sueltos.
"""

from pydantic import BaseModel, Field, AliasChoices, field_validator, model_validator
from decimal import Decimal
from typing import Optional, List, FrozenSet
from datetime import date, datetime
from enum import Enum


ALL_WEEKDAYS = frozenset(range(7))


# ===== ENUMS =====

class ShiftTag(str, Enum):
    """Turno en el que aplica una promoción (0=todos)"""
    TODOS = "todos"
    MANANA = "manana"
    TARDE = "tarde"
    NOCHE = "noche"

    @classmethod
    def parse(cls, value) -> "ShiftTag":
        if isinstance(value, ShiftTag):
            return value
        cleaned = str(value or "").strip().lower()
        cleaned = cleaned.replace("ñ", "n")
        if cleaned.startswith("turno "):
            cleaned = cleaned[len("turno "):]
        return cls(cleaned or cls.TODOS.value)


# ===== PRODUCTOS =====

class Product(BaseModel):
    """Snapshot inmutable de un producto del catálogo"""
    id: int = Field(description="ID del producto")
    name: str = Field(validation_alias=AliasChoices("name", "nombre"), description="Nombre")
    price: Decimal = Field(ge=0, validation_alias=AliasChoices("price", "precio"), description="Precio unitario")
    category_ids: FrozenSet[int] = Field(
        default=frozenset(),
        validation_alias=AliasChoices("category_ids", "categoria_ids"),
        description="Categorías a las que pertenece"
    )

    model_config = {"frozen": True, "populate_by_name": True}

    @model_validator(mode="before")
    @classmethod
    def single_category(cls, data):
        # productos viejos traen una sola `categoria_id`
        if isinstance(data, dict) and not data.get("category_ids") and not data.get("categoria_ids"):
            single = data.get("category_id", data.get("categoria_id"))
            if single is not None:
                data = {**data, "category_ids": [single]}
        return data

    @field_validator("price", mode="before")
    @classmethod
    def parse_price(cls, v):
        if isinstance(v, float):
            return Decimal(str(v))
        return v

    def belongs_to(self, category_id: int) -> bool:
        return category_id in self.category_ids


# ===== PROMOCIONES =====

class CategoryConfig(BaseModel):
    """
    Restricción de una categoría dentro de una promoción.

    max_quantity = 0 significa sin límite superior.
    """
    config_id: Optional[str] = Field(None, validation_alias=AliasChoices("config_id", "id"))
    category_id: int = Field(validation_alias=AliasChoices("category_id", "categoria_id"))
    applies_to_all_in_category: bool = Field(
        True, validation_alias=AliasChoices("applies_to_all_in_category", "aplica_todos")
    )
    product_id: Optional[int] = Field(None, validation_alias=AliasChoices("product_id", "producto_id"))
    min_quantity: int = Field(0, ge=0, validation_alias=AliasChoices("min_quantity", "cantidad_min"))
    max_quantity: int = Field(0, ge=0, validation_alias=AliasChoices("max_quantity", "cantidad_max"))

    model_config = {"frozen": True, "populate_by_name": True}

    @field_validator("config_id", mode="before")
    @classmethod
    def stringify_id(cls, v):
        return None if v is None or v == "" else str(v)

    @field_validator("product_id", mode="before")
    @classmethod
    def empty_product(cls, v):
        return None if v == "" else v

    @field_validator("min_quantity", "max_quantity", mode="before")
    @classmethod
    def empty_quantity(cls, v):
        return 0 if v is None or v == "" else v

    @model_validator(mode="after")
    def check_bounds(self):
        if self.max_quantity and self.min_quantity > self.max_quantity:
            raise ValueError(
                f"cantidad_min ({self.min_quantity}) mayor que cantidad_max ({self.max_quantity})"
            )
        return self

    @property
    def is_bounded(self) -> bool:
        return self.max_quantity > 0


class PromotionTemplate(BaseModel):
    """Plantilla de promoción tal como la define el catálogo"""
    id: int
    name: str = Field(validation_alias=AliasChoices("name", "nombre"))
    final_price: Decimal = Field(ge=0, validation_alias=AliasChoices("final_price", "precio_final"))
    configs: List[CategoryConfig] = Field(
        default_factory=list, validation_alias=AliasChoices("configs", "configuraciones")
    )
    valid_from: Optional[date] = Field(None, validation_alias=AliasChoices("valid_from", "valido_desde"))
    valid_until: Optional[date] = Field(None, validation_alias=AliasChoices("valid_until", "valido_hasta"))
    weekdays: FrozenSet[int] = Field(ALL_WEEKDAYS, validation_alias=AliasChoices("weekdays", "dias"))
    shift_tag: ShiftTag = Field(ShiftTag.TODOS, validation_alias=AliasChoices("shift_tag", "turno"))
    per_order_limit: Optional[int] = Field(
        None, ge=1, validation_alias=AliasChoices("per_order_limit", "limite_por_pedido")
    )

    model_config = {"frozen": True, "populate_by_name": True}

    @model_validator(mode="before")
    @classmethod
    def assign_config_ids(cls, data):
        if not isinstance(data, dict):
            return data
        key = "configs" if "configs" in data else "configuraciones"
        raw = data.get(key)
        if not raw:
            return data

        normalized = []
        for position, cfg in enumerate(raw):
            if isinstance(cfg, CategoryConfig):
                if cfg.config_id is None:
                    cfg = cfg.model_copy(update={"config_id": f"cfg-{cfg.category_id}-{position}"})
            elif isinstance(cfg, dict) and cfg.get("config_id") in (None, "") and cfg.get("id") in (None, ""):
                category = cfg.get("category_id", cfg.get("categoria_id"))
                cfg = {**cfg, "config_id": f"cfg-{category}-{position}"}
            normalized.append(cfg)
        return {**data, key: normalized}

    @field_validator("final_price", mode="before")
    @classmethod
    def parse_price(cls, v):
        if isinstance(v, float):
            return Decimal(str(v))
        return v

    @field_validator("valid_from", "valid_until", mode="before")
    @classmethod
    def parse_dates(cls, v):
        if v in (None, ""):
            return None
        if isinstance(v, datetime):
            return v.date()
        if isinstance(v, str):
            return v[:10]
        return v

    @field_validator("weekdays", mode="before")
    @classmethod
    def parse_weekdays(cls, v):
        # sin días seleccionados la promo aplica todos los días
        if not v:
            return ALL_WEEKDAYS
        return v

    @field_validator("weekdays")
    @classmethod
    def check_weekdays(cls, v: FrozenSet[int]) -> FrozenSet[int]:
        invalid = [d for d in v if d < 0 or d > 6]
        if invalid:
            raise ValueError(f"Días inválidos: {sorted(invalid)} (0=domingo ... 6=sábado)")
        return v

    @field_validator("shift_tag", mode="before")
    @classmethod
    def parse_shift_tag(cls, v):
        return ShiftTag.parse(v)

    @field_validator("per_order_limit", mode="before")
    @classmethod
    def empty_limit(cls, v):
        return None if v in (None, "", 0) else v

    @field_validator("configs")
    @classmethod
    def unique_config_ids(cls, v: List[CategoryConfig]) -> List[CategoryConfig]:
        seen = set()
        for cfg in v:
            if cfg.config_id in seen:
                raise ValueError(f"config_id duplicado: {cfg.config_id}")
            seen.add(cfg.config_id)
        return v

    def get_config(self, config_id: str) -> Optional[CategoryConfig]:
        for cfg in self.configs:
            if cfg.config_id == config_id:
                return cfg
        return None
