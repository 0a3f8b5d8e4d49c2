"""
Shelfscan: In-Page Script Catalog

Browser-side JavaScript lives here as plain template strings, never as host
closures. Each script is a function expression handed to Playwright's
page.evaluate(); every one returns JSON-serializable data (or null) so the
Python side can interpret it. Interpretation logic stays in Python
(platform_state.py, strategies) where it can be unit-tested.
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Init scripts (run before any page script)
# ---------------------------------------------------------------------------

# Init scripts are plain sources, not function expressions, so they self-invoke.
WEBDRIVER_OVERRIDE = """
(() => {
    Object.defineProperty(navigator, 'webdriver', { get: () => false });
    if (!window.chrome) { window.chrome = { runtime: {} }; }
    Object.defineProperty(navigator, 'languages', { get: () => ['tr-TR', 'tr', 'en-US', 'en'] });
})();
"""

# ---------------------------------------------------------------------------
# Helpers shared by state readers
# ---------------------------------------------------------------------------

# Deep-copies a value through JSON so functions and cycles never reach the
# serializer; returns null on failure.
_PLAIN = """
    const plain = (value) => {
        if (value === undefined || value === null) return null;
        try { return JSON.parse(JSON.stringify(value)); } catch (e) { return null; }
    };
"""

# ---------------------------------------------------------------------------
# Platform global state readers
# ---------------------------------------------------------------------------

SHOPIFY_STATE = """
() => {%s
    const meta = window.meta || (window.ShopifyAnalytics && window.ShopifyAnalytics.meta);
    return meta && meta.product ? plain(meta.product) : null;
}
""" % _PLAIN

TRENDYOL_STATE = """
() => {%s
    const props = window['__envoy_product-detail__PROPS'] || window['__PRODUCT_DETAIL_APP_INITIAL_STATE__'];
    return props && props.product ? plain(props.product) : null;
}
""" % _PLAIN

HEPSIBURADA_STATE = """
() => {
    const node = document.getElementById('reduxStore');
    if (!node) return null;
    try {
        const state = JSON.parse(node.innerHTML);
        return (state && state.productState && state.productState.product) || null;
    } catch (e) { return null; }
}
"""

TICIMAX_STATE = """
() => {%s
    return plain(window.productDetailModel);
}
""" % _PLAIN

LCW_STATE = """
() => {%s
    const cart = plain(window.cartOperationViewModel);
    const detail = plain(window.optimizedDetailModel);
    if (!cart && !detail) return null;
    return { cart: cart, detail: detail };
}
""" % _PLAIN

DEFACTO_STATE = """
() => {%s
    return plain(window.PRODUCT_DETAIL_LASTVISITED);
}
""" % _PLAIN

ZARA_STATE = """
() => {%s
    if (!window.zara) return null;
    return plain(window.zara.viewPayload || window.zara.appPayload);
}
""" % _PLAIN

HM_ARTICLE_STATE = """
() => {%s
    return plain(window.productArticleDetails);
}
""" % _PLAIN

# ---------------------------------------------------------------------------
# Interaction scripts
# ---------------------------------------------------------------------------

# arg: list of button labels; clicks the first matching button/link/submit.
CLICK_BY_TEXT = """
(labels) => {
    const nodes = Array.from(document.querySelectorAll('button, a, input[type="submit"]'));
    const target = nodes.find((node) => {
        const text = (node.textContent || '') + ' ' + (node.value || '');
        return labels.some((label) => text.indexOf(label) !== -1);
    });
    if (!target) return false;
    target.click();
    return true;
}
"""

AMAZON_DISMISS_TOAST = """
() => {
    const button = document.querySelector('input[data-action-type="DISMISS_GLOW_UCC_TOAST"]');
    if (!button) return false;
    button.click();
    return true;
}
"""

# arg: pixels
SCROLL_BY = """
(pixels) => { window.scrollBy(0, pixels); return window.scrollY; }
"""

# arg: product id; reads the matching article tile on an H&M search page.
HM_SEARCH_ARTICLE = """
(pid) => {
    const article = document.querySelector(`article[data-articlecode="${pid}"]`) ||
        document.querySelector(`article[data-articlecode^="${pid.substring(0, 10)}"]`);
    if (!article) return null;
    const heading = article.querySelector('h3, h2');
    const spans = Array.from(article.querySelectorAll('span'));
    const priceTexts = spans
        .map((span) => span.textContent || '')
        .filter((text) => /TL|TRY|£|\\$|€/.test(text))
        .join(' ');
    const img = article.querySelector('img');
    return {
        title: heading ? (heading.textContent || '').trim() : '',
        priceTexts: priceTexts,
        image: img ? (img.getAttribute('data-src') || img.getAttribute('src') || '') : ''
    };
}
"""
