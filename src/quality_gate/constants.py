"""Source and keyword lists used by the quality gate."""

TRUSTED_SOURCES = (
    # Global wires
    "reuters", "associated press", "bloomberg", "bbc", "al jazeera", "deutsche welle",
    # Financial and policy
    "the wall street journal", "financial times", "the economist", "npr", "pbs",
    # India hard news
    "the indian express", "the hindu", "livemint", "ndtv", "business standard",
    "the print", "scroll.in", "ani news", "deccan herald", "the tribune",
)

JUNK_KEYWORDS = (
    # Lifestyle
    "dating", "relationship advice", "tips for", "diet", "weight loss",
    "workout", "fashion", "beauty", "outfit", "skin care", "hairstyle",
    "makeup", "gift idea",
    # Shopping and deals
    "coupon", "promo code", "discount", "deal of the day", "price drop",
    "shopping", "gift guide", "best buy", "amazon prime", "black friday",
    "sale", "affiliate link",
    # Gaming guides
    "wordle", "connections hint", "connections answer", "crossword", "sudoku",
    "walkthrough", "guide", "today's answer", "patch notes", "loadout",
    "tier list", "how to get", "where to find", "twitch drops", "codes for",
    # Fluff
    "horoscope", "zodiac", "astrology", "tarot", "psychic", "manifesting",
    "celeb look", "red carpet", "net worth",
    # Gambling
    "powerball", "mega millions", "lottery results", "winning numbers",
    "betting odds", "prediction", "parlay", "gambling",
)

BLOCKED_DOMAINS = (
    # Press releases
    "globenewswire.com", "prnewswire.com", "businesswire.com",
    # Financial noise
    "marketwatch.com", "fool.com", "investors.com",
    # Video and social
    "youtube.com", "vimeo.com", "twitter.com", "x.com", "facebook.com",
    "instagram.com", "tiktok.com", "pinterest.com",
    # E-commerce
    "ebay.com", "amazon.com", "craigslist.org",
    # Pure sports and tabloid
    "sports.yahoo.com", "espn.com", "entertainment.yahoo.com", "tmz.com",
)

BLOCKED_SOURCE_NAMES = ("pr newswire", "globe newswire")

PAYWALL_INDICATORS = (
    "subscribe", "subscription", "paywall", "register to read",
    "subscriber-only", "premium content",
)

CLICKBAIT_PATTERNS = (
    r"you won'?t believe",
    r"will (shock|amaze|blow) you",
    r"what happens next",
    r"\bthis one (weird )?trick\b",
    r"^\d+\s+(things|reasons|ways|photos)\b",
    r"\bgoes viral\b",
    r"\bjaw-?dropping\b",
)
