#!/usr/bin/env python3
import re
import unicodedata

# Straight and typographic apostrophes, double quotes and periods are dropped outright
_DROPPED_CHARS = re.compile("['\".\u2018\u2019\u201c\u201d]")
_COMBINING_MARKS = re.compile("[\u0300-\u036f]")
_NON_ALNUM_RUN = re.compile(r"[^a-z0-9]+")


def slugify(name):
    """
    Turns a product name into a URL-style slug.
    "Arc'teryx Men's Jacket" -> "arcteryx-mens-jacket", "Café" -> "cafe".
    Distinct names can map to the same slug; no collision handling is done here.
    """
    if not name or not isinstance(name, str):
        return ""
    text = unicodedata.normalize("NFD", name)
    text = _COMBINING_MARKS.sub("", text)
    text = text.lower()
    text = _DROPPED_CHARS.sub("", text)
    text = _NON_ALNUM_RUN.sub("-", text)
    return text.strip("-")
