import logging
from decimal import Decimal, InvalidOperation

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from freshcart import product as schema
from freshcart.errors import ApiError, ConflictError, NotFoundError
from freshcart.images import product_image
from freshcart.units import UNITS
from server import models
from server.request import CategoryRequest, ProductRequest

logger = logging.getLogger(__name__)


def to_category(category: models.Category) -> schema.Category:
    return schema.Category(id=category.id, label=category.label, value=category.value, unit=category.unit)


def to_product(product: models.Product) -> schema.Product:
    return schema.Product(
        id=product.id,
        label=product.label,
        pricePerUnit=float(product.price_per_unit),
        category=to_category(product.category),
        image=product_image(product.label, product.category.label),
    )


def list_active_products(session: Session) -> list[schema.Product]:
    query = (
        select(models.Product)
        .where(models.Product.is_active.is_(True))
        .order_by(models.Product.category_id, models.Product.id)
    )
    return [to_product(product) for product in session.scalars(query)]


def get_active_product(session: Session, product_id: int) -> schema.Product:
    product = session.get(models.Product, product_id)
    if product is None or not product.is_active:
        raise NotFoundError("Product not found", 404)
    return to_product(product)


def create_product(session: Session, request: ProductRequest) -> schema.Product:
    label, price, category = _validated_product_fields(session, request)
    product = models.Product(
        label=label, name=label, price_per_unit=price, unit=category.unit, category=category, is_active=True
    )
    session.add(product)
    session.commit()
    logger.info("Created product %s (%s)", product.id, product.label)
    return to_product(product)


def update_product(session: Session, product_id: int, request: ProductRequest) -> schema.Product:
    product = session.get(models.Product, product_id)
    if product is None:
        raise NotFoundError("Product not found", 404)
    label, price, category = _validated_product_fields(session, request)
    product.label = label
    product.name = label
    product.price_per_unit = price
    product.category = category
    product.unit = category.unit
    if request.is_active is not None:
        product.is_active = request.is_active
    session.commit()
    return to_product(product)


def soft_delete_product(session: Session, product_id: int):
    product = session.get(models.Product, product_id)
    if product is None:
        raise NotFoundError("Product not found", 404)
    product.is_active = False
    session.commit()
    logger.info("Deactivated product %s", product_id)


def list_categories(session: Session) -> list[schema.Category]:
    return [to_category(category) for category in session.scalars(select(models.Category).order_by(models.Category.id))]


def create_category(session: Session, request: CategoryRequest) -> schema.Category:
    label = (request.label or "").strip()
    if not label or not request.unit:
        raise ApiError("Label and unit are required", 400)
    if request.unit not in UNITS:
        raise ApiError(f"Unit must be one of: {', '.join(UNITS)}", 400)
    value = schema.slugify(label)
    if session.scalar(select(models.Category).where(models.Category.value == value)) is not None:
        raise ConflictError("Category already exists", 409)
    category = models.Category(label=label, value=value, unit=request.unit)
    session.add(category)
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        raise ConflictError("Category already exists", 409)
    return to_category(category)


def delete_category(session: Session, category_id: int):
    category = session.get(models.Category, category_id)
    if category is None:
        raise NotFoundError("Category not found", 404)
    used_count = session.scalar(
        select(func.count()).select_from(models.Product).where(models.Product.category_id == category_id)
    )
    if used_count:
        raise ConflictError(f"Category is used by {used_count} product(s)", 400)
    session.delete(category)
    session.commit()
    logger.info("Deleted category %s", category.value)


def _validated_product_fields(
    session: Session, request: ProductRequest
) -> tuple[str, Decimal, models.Category]:
    label = (request.label or "").strip()
    if not label:
        raise ApiError("Product name is required", 400)
    price = _parse_price(request.price_per_unit)
    if price is None:
        raise ApiError("Valid price is required", 400)
    category_id = _parse_id(request.category_id)
    if category_id is None:
        raise ApiError("Category is required", 400)
    category = session.get(models.Category, category_id)
    if category is None:
        raise ApiError("Category not found", 400)
    return label, price, category


def _parse_price(value) -> Decimal | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        price = Decimal(str(value)).quantize(Decimal("0.01"))
    except InvalidOperation:
        return None
    if not price.is_finite() or price <= 0:
        return None
    return price


def _parse_id(value) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        return None
    return parsed if parsed > 0 else None
