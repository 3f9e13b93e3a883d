"""Mapping of bookkeeping categories onto common tax-return categories."""

MEALS_TAX_CATEGORY = "Meals and Entertainment (50% deductible)"
DEFAULT_EXPENSE_TAX_CATEGORY = "Other Business Expenses"
DEFAULT_INCOME_TAX_CATEGORY = "Gross Receipts or Sales"

TAX_CATEGORY_MAP: dict[str, str] = {
    "Office Supplies": "Office Expenses",
    "Travel": "Travel and Entertainment",
    "Meals": MEALS_TAX_CATEGORY,
    "Internet": "Utilities",
    "Phone": "Utilities",
    "Rent": "Rent or Lease",
    "Insurance": "Insurance",
    "Marketing": "Advertising and Marketing",
    "Salary": "Wages and Salaries",
    "Consulting": "Professional Services",
    "Software": "Software and Subscriptions",
    "Equipment": "Depreciation",
    "Vehicle": "Vehicle Expenses",
    "Bank Fees": "Bank Charges",
    "Legal": "Legal and Professional",
    "Training": "Education and Training",
}


def map_to_tax_category(category: str, *, income: bool = False) -> str:
    """Tax category for a category name; unmapped names get the default bucket."""

    if income:
        return DEFAULT_INCOME_TAX_CATEGORY
    return TAX_CATEGORY_MAP.get(category, DEFAULT_EXPENSE_TAX_CATEGORY)


def is_deductible(tax_category: str) -> bool:
    """Expenses are deductible except meals, which fall under the 50% rule."""

    return tax_category != MEALS_TAX_CATEGORY
