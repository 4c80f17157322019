"""Package catalog and pricing tests."""
from decimal import Decimal

import pytest

from tests.helpers import HUNDRED_PACK
from tokenpay.core.exceptions import InvalidPackage, UnknownPackage
from tokenpay.services.package_catalog import (
    CUSTOM_PACKAGE_ID,
    DEFAULT_PACKAGES,
    PackageCatalog,
    PackageSelector,
)
from tokenpay.services.tax_policy import DEFAULT_TAX_POLICY


class TestCatalogLookup:
    """Package lookup and custom quantities."""

    def test_default_packages(self) -> None:
        catalog = PackageCatalog.from_packages()

        summary = {p.id: (p.tokens, p.base_price) for p in catalog.all_packages()}

        assert summary == {
            "starter": (1000, Decimal("19.99")),
            "professional": (5000, Decimal("79.99")),
            "enterprise": (15000, Decimal("199.99")),
            "unlimited": (50000, Decimal("499.99")),
        }

    def test_unknown_package(self, catalog: PackageCatalog) -> None:
        with pytest.raises(UnknownPackage) as exc_info:
            catalog.get("platinum")

        assert exc_info.value.details == {"package_id": "platinum"}
        assert isinstance(exc_info.value, InvalidPackage)

    def test_custom_quantity_priced_per_unit(self, catalog: PackageCatalog) -> None:
        package = catalog.custom(250)

        assert package.id == CUSTOM_PACKAGE_ID
        assert package.name == "Custom Pack"
        assert package.tokens == 250
        assert package.base_price == Decimal("500.00")

    @pytest.mark.parametrize("tokens", [0, -5, 100_001, True])
    def test_custom_quantity_rejected(self, catalog: PackageCatalog, tokens) -> None:
        with pytest.raises(InvalidPackage):
            catalog.custom(tokens)

    @pytest.mark.parametrize(
        "selector",
        [
            PackageSelector(),
            PackageSelector(package_id="starter", custom_tokens=10),
            PackageSelector(package_id=CUSTOM_PACKAGE_ID),
        ],
    )
    def test_selector_must_name_exactly_one_package(self, catalog, selector) -> None:
        with pytest.raises(InvalidPackage):
            catalog.resolve(selector)


class TestPricing:
    """Conversion and tax arithmetic."""

    @pytest.mark.parametrize("package", [*DEFAULT_PACKAGES, HUNDRED_PACK], ids=lambda p: p.id)
    @pytest.mark.parametrize("country", ["IN", "US", "DE"])
    def test_final_is_base_plus_tax(self, catalog, package, country) -> None:
        quote = catalog.quote(PackageSelector(package_id=package.id), country)

        assert quote.final_amount == quote.base_amount + quote.tax_amount
        expected_tax = (quote.base_amount * quote.tax.tax_rate).quantize(Decimal("0.01"))
        assert quote.tax_amount == expected_tax

    def test_india_scenario(self, catalog: PackageCatalog) -> None:
        quote = catalog.quote(PackageSelector(package_id="hundred"), "india")

        assert quote.currency == "INR"
        assert quote.billing_country == "IN"
        assert quote.base_amount == Decimal("8800.00")
        assert quote.tax_amount == Decimal("1584.00")
        assert quote.final_amount == Decimal("10384.00")
        assert quote.amount_minor == 1038400

    def test_usd_prices_unchanged(self, catalog: PackageCatalog) -> None:
        quote = catalog.quote(PackageSelector(package_id="starter"), "US")

        assert quote.currency == "USD"
        assert quote.final_amount == Decimal("19.99")
        assert quote.tax_amount == Decimal("0.00")
        assert quote.amount_minor == 1999

    def test_rounding_after_conversion_and_tax(self, catalog: PackageCatalog) -> None:
        # 19.99 * 88 = 1759.12; 1759.12 * 0.18 = 316.6416 -> 316.64
        quote = catalog.quote(PackageSelector(package_id="starter"), "IN")

        assert quote.base_amount == Decimal("1759.12")
        assert quote.tax_amount == Decimal("316.64")
        assert quote.final_amount == Decimal("2075.76")

    def test_pricing_is_deterministic(self, catalog: PackageCatalog) -> None:
        selector = PackageSelector(package_id="enterprise")

        first = catalog.quote(selector, "IN", DEFAULT_TAX_POLICY)
        second = catalog.quote(selector, "IN", DEFAULT_TAX_POLICY)

        assert first == second

    def test_price_list(self, catalog: PackageCatalog) -> None:
        prices = catalog.price_list("IN")

        assert [q.package.id for q in prices][:4] == [p.id for p in DEFAULT_PACKAGES]
        starter = prices[0].to_dict()
        assert starter["formatted_price"] == "₹2075.76"
        assert starter["tax_info"] == {"rate": "0.18", "name": "GST", "applicable": True}
