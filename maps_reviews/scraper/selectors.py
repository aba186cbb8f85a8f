from typing import Final

# Selector strategy based on UI structure and behavior attributes.
# Avoid concrete ids because they change frequently in Google Maps.
# Page-level groups may use Playwright-only pseudo classes (:has-text);
# card-level groups are evaluated against card snapshots with soupsieve and
# must stay plain CSS.
SELECTOR_PATTERNS: Final[dict[str, tuple[str, ...]]] = {
    # Navigation (page level)
    "SEARCH_RESULT_LINKS": (
        "div[role='feed'] a[href*='/maps/place/']",
        "div[role='feed'] a.hfpxzc",
        "a[href*='/maps/place/']",
    ),
    "REVIEWS_TAB": (
        "button[role='tab'][aria-label*='review' i]",
        "button[data-tab-index='1']",
        "button[role='tab']:has-text('Reviews')",
    ),
    "REVIEWS_BUTTON": (
        "button[jsaction*='reviewChart.moreReviews']",
        "button[aria-label*='more review' i]",
        "button:has-text('review')",
        "span:has-text('review')",
    ),
    "REVIEWS_PANEL_READY": (
        "button[aria-label*='sort review' i]",
        "input[aria-label*='search review' i]",
        "div[role='radiogroup'][aria-label*='filter review' i]",
    ),
    "SORT_BUTTON": (
        "button[aria-label='Sort reviews']",
        "button[aria-label*='sort review' i]",
        "button[data-value='Sort']",
    ),
    "SORT_NEWEST_OPTION": (
        "div[role='menuitemradio']:has-text('Newest')",
        "li[data-index='1']",
    ),
    "SCROLL_CONTAINER": (
        "div[role='main'] div.m6QErb.DxyBCb",
        "div[role='main'] div.m6QErb.WNBkOb",
        "div[role='main'] div.m6QErb",
    ),
    # Scoped under the adopted card selector before clicking.
    "REVIEW_EXPAND": (
        "button.w8nwRe.kyuRq",
        "button[aria-label='See more']",
        "button[jsaction*='.review.expandReview']",
        "button:has-text('More')",
    ),
    # Review card boundary, in priority order.
    "REVIEW_CARDS": (
        "div.jftiEf[data-review-id]",
        "div[data-review-id].jftiEf",
        "div.jftiEf.fontBodyMedium",
        "div.jftiEf",
        "div[data-review-id][jsaction*='.review.in']",
        "div[jsaction*='review'][data-review-id]",
        "div[data-review-id]",
    ),
    # Card fields (card level)
    "REVIEW_ID": (
        "[data-review-id]",
    ),
    "AUTHOR_NAME": (
        "div.d4r55",
        "button.WEBjve div.d4r55",
        "a[href*='/contrib/'] div",
    ),
    "RATING_LABEL": (
        "span.kvMYJc[role='img']",
        "span[role='img'][aria-label*='star' i]",
        "[role='img'][aria-label*='star' i]",
        "[role='img'][aria-label*='estrella' i]",
    ),
    "FILLED_STARS": (
        "img[src*='star_yellow']",
        "span.hCCjke.google-symbols",
    ),
    "RELATIVE_TIME": (
        "span.rsqaWe",
    ),
    "REVIEW_TEXT": (
        "div.MyEned span.wiI7pd",
        "span.wiI7pd",
        "div.MyEned span",
    ),
    "LIKE_COUNT": (
        "span.pkWtMe",
    ),
    "DETAILED_RATING_ROWS": (
        "div.k1MNkf",
        "div[class*='PBBkOb']",
    ),
    "DETAILED_RATING_VALUE": (
        "span[role='img'][aria-label]",
        "[role='img'][aria-label]",
    ),
    "REVIEWER_INFO": (
        "div.RfnDt span",
        "div.RfnDt",
    ),
    "OWNER_RESPONSE_BLOCK": (
        "div.CDe7pd",
    ),
    "OWNER_RESPONSE_TEXT": (
        "div.wiI7pd",
        ".wiI7pd",
        "div[lang]",
    ),
    "OWNER_RESPONSE_TIME": (
        "span.DZSIDd",
        ".DZSIDd",
    ),
}
