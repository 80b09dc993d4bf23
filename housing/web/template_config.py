"""Jinja2 template configuration."""

from pathlib import Path

from fastapi.templating import Jinja2Templates

from housing.web.formatting import format_price, property_type_label

# Template directory is at housing/templates/
BASE_DIR = Path(__file__).resolve().parent.parent
templates = Jinja2Templates(directory=str(BASE_DIR / "templates"))

templates.env.filters["price"] = format_price
templates.env.filters["property_type"] = property_type_label
