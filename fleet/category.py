"""Date-bearing deadline categories tracked per vehicle."""

from enum import Enum


class Category(Enum):
    """A regulatory or maintenance deadline with a calendar date."""

    INSPECTION = "inspection"
    IUC = "iuc"
    ANNUAL_REVIEW = "annual"

    @property
    def field(self) -> str:
        """Vehicle attribute holding the deadline date."""
        return _FIELDS[self]

    @property
    def label(self) -> str:
        return _LABELS[self]

    @property
    def digest_icon(self) -> str:
        return _DIGEST_ICONS[self]

    @classmethod
    def parse(cls, value: str) -> "Category":
        """Look up a category by value or name, case-insensitive."""
        key = value.strip().lower().replace("-", "_")
        for category in cls:
            if key in (category.value, category.name.lower()):
                return category
        raise ValueError(f"Unknown deadline category '{value}'")


# Order in which deadlines are checked for every vehicle
CHECK_ORDER = (Category.INSPECTION, Category.IUC, Category.ANNUAL_REVIEW)

_FIELDS = {
    Category.INSPECTION: "next_inspection_date",
    Category.IUC: "next_iuc_date",
    Category.ANNUAL_REVIEW: "next_annual_review_date",
}

_LABELS = {
    Category.INSPECTION: "Inspeção Periódica (IPO)",
    Category.IUC: "Pagamento de Selo (IUC)",
    Category.ANNUAL_REVIEW: "Revisão Anual",
}

_DIGEST_ICONS = {
    Category.INSPECTION: "🚗",
    Category.IUC: "📄",
    Category.ANNUAL_REVIEW: "🔧",
}
