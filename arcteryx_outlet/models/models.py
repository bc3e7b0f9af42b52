#!/usr/bin/env python3
from dataclasses import dataclass, asdict


@dataclass
class ProductRecord:
    """One product tile scraped from the outlet listing."""
    name: str
    price: str  # display text, currency symbol kept
    link: str
    slug: str = ""

    def to_dict(self):
        return asdict(self)

    def __repr__(self):
        return f"<ProductRecord {self.slug or '-'}: {self.name[:50]}>"
