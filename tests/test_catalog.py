import pytest
from pydantic import ValidationError
from sqlalchemy import select

from shop_service.exceptions import (
    AlreadyExists,
    CategoryNotFound,
    FavoriteNotFound,
    InsufficientStock,
    ProductInUse,
    ProductNotFound,
)
from shop_service.models.product import Product, SearchLog
from shop_service.models.schemas import (
    CategoryCreate,
    CategoryUpdate,
    FavoriteCreate,
    OrderCreate,
    ProductCreate,
    ProductSearchParams,
    ProductSort,
    ProductUpdate,
    StockAdjustment,
)
from shop_service.models.user import FavoriteItemType
from shop_service.services.category_service import CategoryService
from shop_service.services.favorite_service import FavoriteService
from shop_service.services.order_service import OrderService
from shop_service.services.product_service import ProductService


@pytest.fixture
def catalog(make_product):
    return {
        "phone": make_product("Smart Phone", price=300.0, order_count=5),
        "case": make_product("Phone Case", price=15.0, order_count=5),
        "cable": make_product("USB Cable", price=5.0, order_count=9),
        "lamp": make_product("Desk Lamp", price=40.0, order_count=0),
    }


def titles(products):
    return [p.title for p in products]


def test_create_product_requires_category(db):
    with pytest.raises(CategoryNotFound):
        ProductService.create_product(db, ProductCreate(category_id=77, title="Orphan", price=1.0))


def test_create_product_starts_unpopular(db, category):
    product = ProductService.create_product(
        db, ProductCreate(category_id=category.id, title="Kettle", price=25.0, stock=3, images=["k.png"])
    )

    assert product.order_count == 0
    assert product.stock == 3
    assert product.category.name == "Electronics"


def test_update_product_is_partial(db, make_product):
    product = make_product("Kettle", price=25.0, stock=3)

    updated = ProductService.update_product(db, product.id, ProductUpdate(price=19.5))

    assert updated.price == 19.5
    assert updated.title == "Kettle"
    assert updated.stock == 3


def test_adjust_stock_restocks_sold_out_product(db, make_product):
    product = make_product("Kettle", stock=0)

    restocked = ProductService.adjust_stock(db, product.id, 10)

    assert restocked.stock == 10
    db.expire_all()
    assert db.get(Product, product.id).stock == 10


def test_adjust_stock_never_goes_below_zero(db, make_product):
    product = make_product("Kettle", stock=3)

    with pytest.raises(InsufficientStock):
        ProductService.adjust_stock(db, product.id, -4)

    db.expire_all()
    assert db.get(Product, product.id).stock == 3
    assert ProductService.adjust_stock(db, product.id, -3).stock == 0


def test_adjust_stock_of_deleted_product(db, make_product):
    product = make_product()
    ProductService.delete_product(db, product.id)

    with pytest.raises(ProductNotFound):
        ProductService.adjust_stock(db, product.id, 5)
    with pytest.raises(ProductNotFound):
        ProductService.adjust_stock(db, 999, 5)


def test_stock_adjustment_rejects_zero():
    with pytest.raises(ValidationError):
        StockAdjustment(delta=0)


def test_soft_deleted_product_disappears(db, make_product):
    product = make_product()

    ProductService.delete_product(db, product.id)

    with pytest.raises(ProductNotFound):
        ProductService.get_product(db, product.id)
    assert ProductService.get_products(db) == ([], 0)


def test_delete_ordered_product_is_refused(db, make_product, make_user):
    product = make_product()
    OrderService.create_order(db, make_user().id, OrderCreate(items=[{"product_id": product.id, "quantity": 1}]))

    with pytest.raises(ProductInUse):
        ProductService.delete_product(db, product.id)


def test_search_by_title_orders_by_popularity_then_title(db, catalog):
    products, total = ProductService.search_products(db, ProductSearchParams(title="phone"))

    assert total == 2
    assert titles(products) == ["Phone Case", "Smart Phone"]


def test_search_without_title_orders_by_popularity(db, catalog):
    products, total = ProductService.search_products(db, ProductSearchParams())

    assert total == 4
    assert titles(products)[0] == "USB Cable"
    assert titles(products)[-1] == "Desk Lamp"


def test_search_price_range_and_sort(db, catalog):
    products, total = ProductService.search_products(
        db, ProductSearchParams(min_price=10, max_price=300, sort_by=ProductSort.PRICE_ASC)
    )

    assert total == 3
    assert titles(products) == ["Phone Case", "Desk Lamp", "Smart Phone"]


def test_search_pagination_reports_total(db, catalog):
    products, total = ProductService.search_products(
        db, ProductSearchParams(sort_by=ProductSort.PRICE_DESC, limit=2, offset=1)
    )

    assert total == 4
    assert titles(products) == ["Desk Lamp", "Phone Case"]


def test_search_skips_deleted_products(db, catalog):
    ProductService.delete_product(db, catalog["lamp"].id)

    products, total = ProductService.search_products(db, ProductSearchParams(title="lamp"))

    assert (products, total) == ([], 0)


def test_log_search_records_query(db, make_user):
    user = make_user()

    ProductService.log_search(db, user.id, "lamp", {"sort_by": "price_asc"}, 2)

    log = db.scalars(select(SearchLog)).one()
    assert (log.user_id, log.query, log.filters, log.results) == (user.id, "lamp", {"sort_by": "price_asc"}, 2)


def test_category_names_are_unique(db, category):
    with pytest.raises(AlreadyExists):
        CategoryService.create_category(db, CategoryCreate(name="electronics"))


def test_update_category(db, category):
    updated = CategoryService.update_category(db, category.id, CategoryUpdate(description="All gadgets"))

    assert updated.name == "Electronics"
    assert updated.description == "All gadgets"


def test_delete_category_in_use_is_refused(db, category, make_product):
    make_product()

    with pytest.raises(ProductInUse):
        CategoryService.delete_category(db, category.id)


def test_delete_empty_category(db):
    category = CategoryService.create_category(db, CategoryCreate(name="Garden"))

    CategoryService.delete_category(db, category.id)

    with pytest.raises(CategoryNotFound):
        CategoryService.get_category(db, category.id)


def test_favorites_lifecycle(db, make_user, make_product, category):
    user = make_user()
    product = make_product()

    favorite = FavoriteService.add_favorite(db, user.id, FavoriteCreate(item_id=product.id, item_type="product"))
    FavoriteService.add_favorite(db, user.id, FavoriteCreate(item_id=category.id, item_type="category"))

    assert FavoriteService.is_favorite(db, user.id, product.id, FavoriteItemType.PRODUCT)
    assert len(FavoriteService.get_favorites(db, user.id)) == 2
    assert len(FavoriteService.get_favorites(db, user.id, FavoriteItemType.CATEGORY)) == 1

    with pytest.raises(AlreadyExists):
        FavoriteService.add_favorite(db, user.id, FavoriteCreate(item_id=product.id, item_type="product"))

    FavoriteService.remove_favorite(db, user.id, favorite.id)
    assert not FavoriteService.is_favorite(db, user.id, product.id, FavoriteItemType.PRODUCT)


def test_favorite_requires_existing_item(db, make_user):
    with pytest.raises(ProductNotFound):
        FavoriteService.add_favorite(db, make_user().id, FavoriteCreate(item_id=5, item_type="product"))


def test_cannot_remove_someone_elses_favorite(db, make_user, make_product):
    owner, other = make_user(), make_user()
    favorite = FavoriteService.add_favorite(
        db, owner.id, FavoriteCreate(item_id=make_product().id, item_type="product")
    )

    with pytest.raises(FavoriteNotFound):
        FavoriteService.remove_favorite(db, other.id, favorite.id)
