_IMAGES_PATH = "/images/products"

# Ordered from the most specific keyword to the most general one.
_KEYWORD_IMAGES: tuple[tuple[str, str], ...] = (
    ("layerlive", "layerLive.jpg"),
    ("layer live", "layerLive.jpg"),
    ("live layer", "layerLive.jpg"),
    ("broiler live", "broilerLive.jpg"),
    ("live broiler", "broilerLive.jpg"),
    ("live chicken", "broilerLive.jpg"),
    ("country live", "CountryLive.jpg"),
    ("country chicken", "CountryLive.jpg"),
    ("country", "CountryLive.jpg"),
    ("prawns", "prawns.jpg"),
    ("shrimp", "prawns.jpg"),
    ("skinless", "skinless.webp"),
    ("mutton leg", "mutton-leg.webp"),
    ("boneless", "chicken-breast.webp"),
    ("curry cut", "chicken-curry-cut.webp"),
    ("whole chicken", "whole-chicken.webp"),
    ("mutton", "mutton.png"),
    ("goat", "mutton-curry-cut.webp"),
    ("broiler", "Broiler_Chicken.webp"),
    ("layer", "layer.jpg"),
    ("fish", "fish.png"),
    ("katla", "katla.webp"),
    ("pomfret", "pomfret.webp"),
    ("egg", "eggs.jpg"),
)
_FALLBACK_IMAGE = "fresh-meat.webp"


def product_image(label: str | None, category_label: str | None) -> str:
    search_text = f"{(label or '').strip()} {(category_label or '').strip()}".lower()
    for keyword, file_name in _KEYWORD_IMAGES:
        if keyword in search_text:
            return f"{_IMAGES_PATH}/{file_name}"
    return f"{_IMAGES_PATH}/{_FALLBACK_IMAGE}"
