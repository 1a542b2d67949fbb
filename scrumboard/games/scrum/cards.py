"""
Starter cards - the requirements that seed the Funnel of a new game.

Efforts follow the board's sizing: 1 (small), 3 (medium), 5 (large).
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class CardTemplate:
    """A card definition; setup turns it into a Card instance."""
    key: str
    title: str
    effort: int
    description: str = ""
    technical_debt: bool = False


STARTER_CARDS: tuple[CardTemplate, ...] = (
    CardTemplate("login", "User login", 3, "Email and password sign-in"),
    CardTemplate("signup", "Account sign-up", 3, "Self-service registration"),
    CardTemplate("search", "Product search", 5, "Full-text search over the catalogue"),
    CardTemplate("cart", "Shopping cart", 5, "Add, remove and update cart items"),
    CardTemplate("checkout", "Checkout flow", 5, "Address, payment and confirmation"),
    CardTemplate("profile", "Profile page", 1, "Show and edit user details"),
    CardTemplate("reset_password", "Password reset", 1, "Reset link by email"),
    CardTemplate("order_history", "Order history", 3, "List past orders"),
    CardTemplate("notifications", "Email notifications", 3, "Order status emails"),
    CardTemplate("audit_log", "Audit log", 1, "Record admin actions"),
    CardTemplate("ci_pipeline", "Harden CI pipeline", 3, "Flaky tests and slow builds", technical_debt=True),
    CardTemplate("db_migrations", "Clean up migrations", 1, "Squash legacy migrations", technical_debt=True),
)
