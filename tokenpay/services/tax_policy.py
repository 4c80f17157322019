"""TokenPay - Tax and currency policy.

Maps a free-form billing country to the currency it is charged in and
the tax applied on top of the base price. Pure and total: unknown
countries fall back to the international policy.
"""

from dataclasses import dataclass, field
from decimal import Decimal

# Display metadata for every currency the policy can select
SUPPORTED_CURRENCIES: tuple[dict[str, str], ...] = (
    {"code": "INR", "symbol": "₹", "name": "Indian Rupee"},
    {"code": "USD", "symbol": "$", "name": "US Dollar"},
)


@dataclass(frozen=True)
class TaxInfo:
    """Result of resolving a billing country.

    Attributes:
        country: Canonical uppercase country code (aliases collapsed)
        currency_code: INR / USD
        tax_rate: Fraction, e.g. 0.18
        tax_name: GST / No Tax
        applicable: True when tax_rate > 0
    """

    country: str
    currency_code: str
    tax_rate: Decimal
    tax_name: str
    applicable: bool


@dataclass(frozen=True)
class TaxPolicy:
    """Immutable tax table.

    One designated local country (with aliases) is charged in local
    currency with a fixed tax; everything else gets the default
    international currency and no tax.
    """

    local_country: str = "IN"
    local_aliases: frozenset[str] = field(default_factory=lambda: frozenset({"IN", "INDIA"}))
    local_currency: str = "INR"
    local_tax_rate: Decimal = Decimal("0.18")
    local_tax_name: str = "GST"
    default_country: str = "US"
    default_currency: str = "USD"
    default_tax_name: str = "No Tax"

    def normalize_country(self, country: str | None) -> str:
        """Uppercase, strip and collapse aliases.

        Example: " india " -> "IN", "" -> "US", "de" -> "DE"
        """
        code = (country or "").strip().upper()
        if not code:
            return self.default_country
        if code in self.local_aliases:
            return self.local_country
        return code

    def resolve(self, country: str | None) -> TaxInfo:
        """Resolve currency and tax for a billing country. Never raises."""
        code = self.normalize_country(country)
        if code == self.local_country:
            return TaxInfo(
                country=code,
                currency_code=self.local_currency,
                tax_rate=self.local_tax_rate,
                tax_name=self.local_tax_name,
                applicable=self.local_tax_rate > 0,
            )
        return TaxInfo(
            country=code,
            currency_code=self.default_currency,
            tax_rate=Decimal("0"),
            tax_name=self.default_tax_name,
            applicable=False,
        )

    def supported_currencies(self) -> list[dict[str, str]]:
        codes = {self.local_currency, self.default_currency}
        return [dict(c) for c in SUPPORTED_CURRENCIES if c["code"] in codes]


DEFAULT_TAX_POLICY = TaxPolicy()


def get_tax_info(country: str | None, policy: TaxPolicy = DEFAULT_TAX_POLICY) -> TaxInfo:
    """Resolve tax info with the default policy unless one is given."""
    return policy.resolve(country)
