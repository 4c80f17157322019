"""TokenPay - Package catalog and pricing.

Prices are defined in the reference currency (USD) and converted with a
fixed rate per currency. The rates are an approximation, not live FX.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from decimal import Decimal
from types import MappingProxyType

from tokenpay.core.config import Settings, get_settings
from tokenpay.core.exceptions import InvalidPackage, UnknownPackage
from tokenpay.services.tax_policy import DEFAULT_TAX_POLICY, TaxInfo, TaxPolicy
from tokenpay.utils.amount import format_amount, quantize_money, to_minor_units

CUSTOM_PACKAGE_ID = "custom"
CUSTOM_PACKAGE_NAME = "Custom Pack"

DEFAULT_CONVERSION_RATES: Mapping[str, Decimal] = MappingProxyType(
    {
        "USD": Decimal("1"),
        "INR": Decimal("88"),
    }
)


@dataclass(frozen=True)
class TokenPackage:
    """A purchasable bundle of units."""

    id: str
    name: str
    tokens: int
    base_price: Decimal  # reference currency

    @property
    def is_custom(self) -> bool:
        return self.id == CUSTOM_PACKAGE_ID


DEFAULT_PACKAGES: tuple[TokenPackage, ...] = (
    TokenPackage("starter", "Starter Pack", 1000, Decimal("19.99")),
    TokenPackage("professional", "Professional Pack", 5000, Decimal("79.99")),
    TokenPackage("enterprise", "Enterprise Pack", 15000, Decimal("199.99")),
    TokenPackage("unlimited", "Unlimited Pack", 50000, Decimal("499.99")),
)


@dataclass(frozen=True)
class PackageSelector:
    """Either a catalog package id or a custom unit quantity, never both."""

    package_id: str | None = None
    custom_tokens: int | None = None


@dataclass(frozen=True)
class PriceQuote:
    """A package priced for one billing country.

    final_amount == base_amount + tax_amount always holds.
    """

    package: TokenPackage
    tax: TaxInfo
    base_amount: Decimal
    tax_amount: Decimal
    final_amount: Decimal

    @property
    def currency(self) -> str:
        return self.tax.currency_code

    @property
    def billing_country(self) -> str:
        return self.tax.country

    @property
    def amount_minor(self) -> int:
        return to_minor_units(self.final_amount, self.currency)

    def to_dict(self) -> dict:
        return {
            "id": self.package.id,
            "name": self.package.name,
            "tokens": self.package.tokens,
            "currency": self.currency,
            "base_price": str(self.base_amount),
            "tax_amount": str(self.tax_amount),
            "final_price": str(self.final_amount),
            "formatted_price": format_amount(self.final_amount, self.currency),
            "tax_info": {
                "rate": str(self.tax.tax_rate),
                "name": self.tax.tax_name,
                "applicable": self.tax.applicable,
            },
        }


@dataclass(frozen=True)
class PackageCatalog:
    """Immutable package table plus the custom-quantity pricing rule."""

    packages: Mapping[str, TokenPackage]
    unit_price: Decimal = Decimal("2.00")
    max_custom_tokens: int = 1_000_000
    conversion_rates: Mapping[str, Decimal] = field(
        default_factory=lambda: DEFAULT_CONVERSION_RATES
    )

    @classmethod
    def from_packages(
        cls,
        packages: Iterable[TokenPackage] = DEFAULT_PACKAGES,
        **kwargs,
    ) -> "PackageCatalog":
        table = MappingProxyType({p.id: p for p in packages})
        return cls(packages=table, **kwargs)

    def all_packages(self) -> list[TokenPackage]:
        return list(self.packages.values())

    def get(self, package_id: str) -> TokenPackage:
        """Look up a catalog package.

        Raises:
            UnknownPackage: If the id is not in the catalog
        """
        package = self.packages.get(package_id)
        if package is None:
            raise UnknownPackage(package_id)
        return package

    def custom(self, tokens: int) -> TokenPackage:
        """Build an ad-hoc package priced at ``tokens * unit_price``.

        Raises:
            InvalidPackage: If the quantity is not a positive integer within limits
        """
        if isinstance(tokens, bool) or not isinstance(tokens, int) or tokens <= 0:
            raise InvalidPackage(
                "Custom quantity must be a positive integer", {"custom_tokens": tokens}
            )
        if tokens > self.max_custom_tokens:
            raise InvalidPackage(
                f"Custom quantity cannot exceed {self.max_custom_tokens}",
                {"custom_tokens": tokens, "max": self.max_custom_tokens},
            )
        return TokenPackage(
            id=CUSTOM_PACKAGE_ID,
            name=CUSTOM_PACKAGE_NAME,
            tokens=tokens,
            base_price=self.unit_price * tokens,
        )

    def resolve(self, selector: PackageSelector) -> TokenPackage:
        """Resolve a selector to a package.

        Raises:
            InvalidPackage: If the selector names nothing or both forms
            UnknownPackage: If the package id is not in the catalog
        """
        has_id = bool(selector.package_id)
        has_custom = selector.custom_tokens is not None
        if has_id == has_custom:
            raise InvalidPackage("Provide exactly one of package_id or custom_tokens")
        if has_custom:
            return self.custom(selector.custom_tokens)  # type: ignore[arg-type]
        if selector.package_id == CUSTOM_PACKAGE_ID:
            raise InvalidPackage("Custom packages require custom_tokens")
        return self.get(selector.package_id)  # type: ignore[arg-type]

    def convert(self, amount: Decimal, currency: str) -> Decimal:
        """Convert a reference-currency amount, rounded to cents."""
        rate = self.conversion_rates.get(currency.upper())
        if rate is None:
            raise InvalidPackage(f"Unsupported currency '{currency}'", {"currency": currency})
        return quantize_money(amount * rate)

    def price(self, package: TokenPackage, tax: TaxInfo) -> PriceQuote:
        base_amount = self.convert(package.base_price, tax.currency_code)
        tax_amount = quantize_money(base_amount * tax.tax_rate)
        return PriceQuote(
            package=package,
            tax=tax,
            base_amount=base_amount,
            tax_amount=tax_amount,
            final_amount=base_amount + tax_amount,
        )

    def quote(
        self,
        selector: PackageSelector,
        country: str | None,
        tax_policy: TaxPolicy = DEFAULT_TAX_POLICY,
    ) -> PriceQuote:
        """Resolve and price a selector for a billing country."""
        package = self.resolve(selector)
        return self.price(package, tax_policy.resolve(country))

    def price_list(
        self, country: str | None, tax_policy: TaxPolicy = DEFAULT_TAX_POLICY
    ) -> list[PriceQuote]:
        tax = tax_policy.resolve(country)
        return [self.price(package, tax) for package in self.all_packages()]


def build_catalog(settings: Settings | None = None) -> PackageCatalog:
    """Build the default catalog with custom pricing from settings."""
    settings = settings or get_settings()
    return PackageCatalog.from_packages(
        DEFAULT_PACKAGES,
        unit_price=settings.custom_unit_price,
        max_custom_tokens=settings.custom_max_units,
    )
