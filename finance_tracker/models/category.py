"""
Transaction Categories

A fixed catalogue of categories, organized by group. Transactions reference
categories by ID; an unknown ID is reported as "Uncategorized".

DESIGN DECISION: Using explicit categories rather than free text ensures
consistent categorization and enables reliable reporting.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict


class CategoryGroup(str, Enum):
    """Category groups."""
    HOME = "home"
    TRANSPORTATION = "transportation"
    FOOD = "food"
    HEALTHCARE = "healthcare"
    ENTERTAINMENT = "entertainment"
    UTILITIES = "utilities"
    PERSONAL = "personal"
    INCOME = "income"
    OTHER = "other"


class TransactionCategory(BaseModel):
    """A transaction category."""
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    group: CategoryGroup


UNCATEGORIZED = "Uncategorized"


def _category(id: str, name: str, group: CategoryGroup) -> TransactionCategory:
    return TransactionCategory(id=id, name=name, group=group)


CATEGORIES: tuple[TransactionCategory, ...] = (
    # Income
    _category("income-salary", "Salary", CategoryGroup.INCOME),
    _category("income-freelance", "Freelance", CategoryGroup.INCOME),
    _category("income-investment", "Investment", CategoryGroup.INCOME),
    _category("income-other", "Other Income", CategoryGroup.INCOME),
    # Home
    _category("home-rent", "Rent", CategoryGroup.HOME),
    _category("home-mortgage", "Mortgage", CategoryGroup.HOME),
    _category("home-maintenance", "Home Maintenance", CategoryGroup.HOME),
    _category("home-furnishing", "Furnishing", CategoryGroup.HOME),
    # Transportation
    _category("transport-fuel", "Fuel", CategoryGroup.TRANSPORTATION),
    _category("transport-public", "Public Transport", CategoryGroup.TRANSPORTATION),
    _category("transport-car", "Car Payment", CategoryGroup.TRANSPORTATION),
    _category("transport-maintenance", "Car Maintenance", CategoryGroup.TRANSPORTATION),
    _category("transport-parking", "Parking", CategoryGroup.TRANSPORTATION),
    # Food
    _category("food-groceries", "Groceries", CategoryGroup.FOOD),
    _category("food-dining", "Dining Out", CategoryGroup.FOOD),
    _category("food-coffee", "Coffee", CategoryGroup.FOOD),
    # Healthcare
    _category("health-insurance", "Health Insurance", CategoryGroup.HEALTHCARE),
    _category("health-doctor", "Doctor", CategoryGroup.HEALTHCARE),
    _category("health-pharmacy", "Pharmacy", CategoryGroup.HEALTHCARE),
    _category("health-fitness", "Fitness", CategoryGroup.HEALTHCARE),
    # Entertainment
    _category("entertainment-streaming", "Streaming", CategoryGroup.ENTERTAINMENT),
    _category("entertainment-movies", "Movies", CategoryGroup.ENTERTAINMENT),
    _category("entertainment-hobbies", "Hobbies", CategoryGroup.ENTERTAINMENT),
    _category("entertainment-travel", "Travel", CategoryGroup.ENTERTAINMENT),
    # Utilities
    _category("utilities-electricity", "Electricity", CategoryGroup.UTILITIES),
    _category("utilities-water", "Water", CategoryGroup.UTILITIES),
    _category("utilities-internet", "Internet", CategoryGroup.UTILITIES),
    _category("utilities-phone", "Phone", CategoryGroup.UTILITIES),
    _category("utilities-gas", "Gas & Utilities", CategoryGroup.UTILITIES),
    # Personal
    _category("personal-clothing", "Clothing", CategoryGroup.PERSONAL),
    _category("personal-beauty", "Personal Care", CategoryGroup.PERSONAL),
    _category("personal-education", "Education", CategoryGroup.PERSONAL),
    _category("personal-gifts", "Gifts", CategoryGroup.PERSONAL),
    # Other
    _category("other", "Other", CategoryGroup.OTHER),
)

_BY_ID = {category.id: category for category in CATEGORIES}

# Keyword hints used to suggest categories from a description.
# Order matters: earlier entries are suggested first.
CATEGORY_KEYWORDS: dict[str, tuple[str, ...]] = {
    "home-rent": ("rent", "lease"),
    "home-mortgage": ("mortgage",),
    "food-groceries": ("grocery", "groceries", "supermarket", "walmart", "target", "costco"),
    "utilities-electricity": ("electric", "power", "electricity"),
    "utilities-water": ("water",),
    "utilities-internet": ("internet", "wifi", "broadband"),
    "utilities-phone": ("phone", "mobile", "verizon", "att", "t-mobile"),
    "utilities-gas": ("utility", "utilities", "bill"),
    "transport-fuel": ("gas", "fuel", "shell", "chevron", "exxon"),
    "transport-car": ("car payment", "auto loan"),
    "transport-public": ("subway", "train", "bus", "metro"),
    "transport-parking": ("parking",),
    "food-dining": ("restaurant", "dinner", "lunch", "breakfast", "food"),
    "food-coffee": ("coffee", "starbucks", "cafe"),
    "health-doctor": ("doctor", "hospital", "clinic", "medical"),
    "health-pharmacy": ("pharmacy", "cvs", "walgreens", "prescription"),
    "entertainment-streaming": ("netflix", "spotify", "hulu", "disney", "subscription"),
    "entertainment-movies": ("movie", "theater", "cinema"),
    "entertainment-travel": ("travel", "flight", "hotel", "vacation"),
    "personal-clothing": ("clothing", "clothes", "fashion"),
    "personal-education": ("education", "school", "tuition", "course"),
    "income-salary": ("salary", "paycheck", "wages"),
    "income-freelance": ("freelance", "gig", "contract"),
    "other": ("misc", "miscellaneous"),
}


def get_category(category_id: str) -> TransactionCategory | None:
    return _BY_ID.get(category_id)


def get_category_name(category_id: str) -> str:
    category = _BY_ID.get(category_id)
    return category.name if category else UNCATEGORIZED


def categories_by_group(group: CategoryGroup) -> list[TransactionCategory]:
    return [category for category in CATEGORIES if category.group == group]


def income_categories() -> list[TransactionCategory]:
    return categories_by_group(CategoryGroup.INCOME)


def expense_categories() -> list[TransactionCategory]:
    """All non-income categories."""
    return [category for category in CATEGORIES if category.group != CategoryGroup.INCOME]


def suggest_categories(description: str, limit: int = 3) -> list[TransactionCategory]:
    """
    Suggest categories whose keywords appear in `description`.

    Matching is a case-insensitive substring test, so "Shell gas station"
    suggests Fuel. Returns at most `limit` categories.
    """
    text = description.lower()
    suggestions = [
        _BY_ID[category_id]
        for category_id, keywords in CATEGORY_KEYWORDS.items()
        if any(keyword in text for keyword in keywords)
    ]
    return suggestions[:limit]
