"""
Shelfscan: Per-Domain DOM Rules

Ordered selector candidates for sites whose structured data is missing or
wrong. A rule applies when the page host contains one of its host fragments
or when one of its marker selectors exists (platform detection, e.g.
Ticimax shops on their own domains).
"""

from __future__ import annotations

from dataclasses import dataclass

from shelfscan.scraper.context import PageSnapshot


@dataclass(frozen=True)
class SiteRule:
    name: str
    hosts: tuple[str, ...] = ()
    markers: tuple[str, ...] = ()
    title_selectors: tuple[str, ...] = ()
    price_selectors: tuple[str, ...] = ()
    image_selectors: tuple[str, ...] = ()
    out_of_stock_selectors: tuple[str, ...] = ()
    out_of_stock_texts: tuple[str, ...] = ()
    title_separator: str | None = None
    currency: str = ""

    def matches(self, host: str, snapshot: PageSnapshot | None = None) -> bool:
        if any(fragment in host for fragment in self.hosts):
            return True
        if snapshot is not None and self.markers:
            return any(snapshot.has(marker) for marker in self.markers)
        return False


SITE_RULES: tuple[SiteRule, ...] = (
    SiteRule(
        name="tagrean",
        hosts=("tagrean.com",),
        title_selectors=("h1.product_title",),
        price_selectors=(".summary.entry-summary .price bdi", ".woocommerce-Price-amount bdi"),
        image_selectors=(".wp-post-image", ".woocommerce-product-gallery__image img"),
    ),
    SiteRule(
        name="decathlon",
        hosts=("decathlon",),
        price_selectors=(".prc__active-price", ".price-box__price", ".vtmn-price__amount", ".vtmn-price"),
    ),
    SiteRule(
        name="hepsiburada",
        hosts=("hepsiburada",),
        price_selectors=('span[data-test-id="price-current-price"]', 'span[itemprop="price"]'),
    ),
    SiteRule(
        name="ticimax",
        hosts=("oldcottoncargo.com.tr", "kufvintage.com"),
        markers=(".TicimaxRuntime",),
        title_selectors=("h1",),
        price_selectors=(".indirimliFiyat .spanFiyat", "#fiyat", ".spanFiyat", ".product-price"),
        image_selectors=("#imgUrunResim", ".product-image img", 'img[data-src*="/urunler/"]'),
    ),
    SiteRule(
        name="dr",
        hosts=("dr.com.tr",),
        price_selectors=(
            ".salePrice", ".price-box .price", ".product-price", ".currentPrice", '[itemprop="price"]',
        ),
        out_of_stock_selectors=(
            ".out-of-stock", ".not-on-sale", ".product-info__out-of-stock", ".btn-out-of-stock",
        ),
        out_of_stock_texts=("Stokta Yok", "Tükendi"),
    ),
    SiteRule(
        name="swatch",
        hosts=("swatch.com",),
        title_selectors=("h1",),
        price_selectors=(".price .value", ".sales .value", ".price"),
        image_selectors=(".product-detail .primary-image img", ".pdp-main-image img", ".product-img img"),
    ),
    SiteRule(
        name="supplementler",
        hosts=("supplementler.com", "vitaminler.com"),
        title_selectors=(".product-name", "h1"),
        price_selectors=(".product-price", ".current-price", ".price", '[itemprop="price"]'),
        image_selectors=(".cloudzoom",),
        out_of_stock_texts=("Tükendi", "Stokta Yok"),
        title_separator="|",
    ),
    SiteRule(
        name="mediamarkt",
        hosts=("mediamarkt",),
        price_selectors=(
            '[data-testid="price-amount"]', ".price-box .price", ".current-price", ".price-tag", ".product-price",
        ),
        out_of_stock_texts=("Tükendi", "Stokta Yok"),
        title_separator="|",
    ),
    SiteRule(
        name="mango",
        hosts=("mango.com",),
        title_selectors=("h1",),
        price_selectors=(
            ".product-features-prices__price", ".product-sale", 'span[data-testid="current-price"]',
        ),
    ),
    SiteRule(
        name="beymen",
        hosts=("beymen.com",),
        title_selectors=(".o-productDetail__title span", "h1.o-productDetail__title"),
        price_selectors=(".m-productPrice__salePrice", ".m-productPrice__lastPrice"),
    ),
    SiteRule(
        name="mavi",
        hosts=("mavi.com",),
        title_selectors=(".product__title", "h1.product-title", "h1"),
        price_selectors=(
            ".product__price.-sale", ".product__price", ".product-detail-info__price", "[data-price-value]",
        ),
        image_selectors=(
            ".product__gallery-item.swiper-slide-active img", ".product__gallery-item img", ".product__gallery img",
        ),
    ),
    SiteRule(
        name="zara",
        hosts=("zara.com",),
        price_selectors=(".price__amount", ".price-current__amount"),
    ),
    SiteRule(
        name="hm",
        hosts=("hm.com",),
        title_selectors=("h1", ".product-item-headline"),
        price_selectors=("#product-price", ".price-value"),
    ),
    SiteRule(
        name="trendyol",
        hosts=("trendyol.com",),
        title_selectors=(".pr-new-br span", "h1.pr-new-br", "h1"),
        price_selectors=(".prc-dsc", ".product-price-container .prc-slg"),
        image_selectors=(".product-container img", ".base-product-image img"),
    ),
    SiteRule(
        name="lcw",
        hosts=("lcw.com", "lcwaikiki.com"),
        title_selectors=("h1.product-title", ".product-title"),
        price_selectors=(
            ".basket-discount .price", ".cart-price", ".campaign-price", ".advanced-price",
            ".discounted-price", ".price", ".product-price", ".current-price",
        ),
        image_selectors=(".product-large-image img", ".product-image img", 'img[loading="eager"]'),
        out_of_stock_texts=("Tükendi",),
    ),
    SiteRule(
        name="defacto",
        hosts=("defacto.com",),
        title_selectors=("h1.product-card__name", ".product-name"),
        price_selectors=(
            ".product-card__price--sale", ".sale-price", ".campaign-price", ".product-card__price--new",
            ".product-price",
        ),
        image_selectors=(".product-card__image img", ".swiper-slide-active img", ".product-image-container img"),
        out_of_stock_selectors=(".out-of-stock",),
        out_of_stock_texts=("Stokta Yok",),
    ),
)


def find_rule(host: str, snapshot: PageSnapshot | None = None) -> SiteRule | None:
    """First rule matching the host, then the first matching by page markers."""
    for rule in SITE_RULES:
        if any(fragment in host for fragment in rule.hosts):
            return rule
    if snapshot is not None:
        for rule in SITE_RULES:
            if rule.markers and rule.matches(host, snapshot):
                return rule
    return None
