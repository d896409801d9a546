"""Default data for a store with no snapshot."""

from .auth import hash_password
from .models import Product, Role, Snapshot, User

DEFAULT_ADMIN = ("Admin", "admin@shop.com", "admin123")
DEFAULT_CUSTOMER = ("Ali", "ali@example.com", "pass")

# (name, description, price, stock, category)
DEFAULT_PRODUCTS: list[tuple[str, str, float, int, str]] = [
    ("Chocolate Cake", "Delicious dark chocolate cake (8 inch)", 25.0, 15, "Cakes"),
    ("Vanilla Cupcakes (6)", "Soft vanilla cupcakes (pack of 6)", 10.0, 40, "Cupcakes"),
    ("Strawberry Tart", "Fresh strawberry tart", 18.0, 10, "Tarts"),
    ("Red Velvet Slice", "Single slice of red velvet cake", 6.0, 30, "Slices"),
    ("Lemon Cheesecake", "Creamy lemon cheesecake", 22.0, 8, "Cakes"),
    ("Tiramisu", "Classic Italian coffee-flavored dessert", 28.0, 12, "Cakes"),
    ("Macarons (12)", "Assorted French macarons", 15.0, 25, "Pastries"),
    ("Carrot Cake", "Moist carrot cake with cream cheese frosting", 20.0, 18, "Cakes"),
]


def seed_default_data(snapshot: Snapshot) -> None:
    """Add the default admin, customer and bakery catalog to an empty snapshot."""
    name, email, password = DEFAULT_ADMIN
    snapshot.users.append(User.create(name, email, hash_password(password), Role.ADMIN))
    name, email, password = DEFAULT_CUSTOMER
    snapshot.users.append(User.create(name, email, hash_password(password), Role.CUSTOMER))

    for name, description, price, stock, category in DEFAULT_PRODUCTS:
        snapshot.products.append(Product.create(name, description, price, stock, category))
