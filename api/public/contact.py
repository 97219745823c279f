"""Build WhatsApp links for the public booking and property-request forms."""

from pydantic import ValidationError

from linknow.models.profile import Profile
from linknow.services import contact_links, supabase_client
from linknow.services.contact_links import BookingRequest, PropertyRequest
from linknow.services.profiles import validation_failed_from
from linknow.utils.errors import NotFound, ValidationFailed
from linknow.utils.http import JsonRequestHandler

FORMS = {
    "booking": (BookingRequest, contact_links.booking_link),
    "request": (PropertyRequest, contact_links.property_request_link),
}


class handler(JsonRequestHandler):

    def do_POST(self):
        self.dispatch(self._contact)

    async def _contact(self):
        body = self.read_json()
        slug = body.pop("slug", None)
        kind = body.pop("kind", None)
        if not slug:
            raise ValidationFailed("slug", "Slug is required")
        if kind not in FORMS:
            raise ValidationFailed("kind", "kind must be 'booking' or 'request'")

        form_model, build_link = FORMS[kind]
        try:
            form = form_model.model_validate(body)
        except ValidationError as e:
            raise validation_failed_from(e)

        record = await supabase_client.get_profile_by_slug(slug)
        if not record or record.get("slug") != slug:
            raise NotFound(f"Profile not found: {slug}")
        url = build_link(Profile.model_validate(record), form)
        if not url:
            raise ValidationFailed("whatsapp_number", "This agent has no WhatsApp number")
        return 200, {"url": url}
