"""TeeStudio: custom apparel storefront backend with a server-side design studio."""

__version__ = "1.0.0"
