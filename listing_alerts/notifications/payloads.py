"""Template context builders for alert e-mails."""

from typing import Dict, Optional, Sequence

from listing_alerts.config.models import LinksConfig
from listing_alerts.domain.models import AlertFrequency, ContactInfo, ListingSnapshot


def _format_number(value: Optional[float]) -> Optional[str]:
    if value is None:
        return None
    if float(value).is_integer():
        return f"{int(value):,}"
    return f"{value:,.2f}"


def listing_type_label(listing_type: Optional[str]) -> str:
    if not listing_type:
        return ""
    return "For Sale" if listing_type == "sale" else "For Rent"


def build_listing_context(listing: ListingSnapshot, links: LinksConfig) -> Dict:
    """Flatten one listing into the fields the templates print.

    Returns:
        Dictionary with title, property_type, listing_type_label, featured,
        location ("area, city"), price, bedrooms, bathrooms, size, url,
        image_url and created_at
    """
    location = ", ".join(part for part in (listing.area, listing.city) if part)
    return {
        "id": listing.id,
        "title": listing.title or "Untitled listing",
        "property_type": listing.property_type,
        "listing_type_label": listing_type_label(listing.listing_type),
        "featured": listing.featured,
        "location": location or None,
        "price": _format_number(listing.price),
        "bedrooms": listing.bedrooms,
        "bathrooms": listing.bathrooms,
        "size": _format_number(listing.size),
        "url": f"{links.frontend_url}/properties/{listing.slug or listing.id}",
        "image_url": listing.image_url,
        "created_at": listing.created_at.isoformat(),
    }


def _common_context(
    contact: ContactInfo,
    search_name: str,
    search_id: Optional[str],
    frequency: AlertFrequency,
    links: LinksConfig,
) -> Dict:
    manage_url = f"{links.frontend_url}/dashboard/saved-searches"
    return {
        "user_name": contact.display_name,
        "search_name": search_name,
        "alert_frequency": frequency.value,
        "manage_searches_url": manage_url,
        "unsubscribe_url": f"{manage_url}?unsubscribe={search_id}" if search_id else manage_url,
    }


def build_instant_context(
    contact: ContactInfo,
    listing: ListingSnapshot,
    search_name: str,
    links: LinksConfig,
    search_id: Optional[str] = None,
) -> Dict:
    context = _common_context(contact, search_name, search_id, AlertFrequency.INSTANT, links)
    context["listing"] = build_listing_context(listing, links)
    return context


def build_digest_context(
    contact: ContactInfo,
    listings: Sequence[ListingSnapshot],
    search_name: str,
    links: LinksConfig,
    search_id: Optional[str] = None,
    frequency: Optional[AlertFrequency] = None,
) -> Dict:
    context = _common_context(
        contact, search_name, search_id, frequency or AlertFrequency.DAILY, links
    )
    context["listings"] = [build_listing_context(listing, links) for listing in listings]
    context["listing_count"] = len(listings)
    return context
