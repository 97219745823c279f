"""Own listings endpoint: list, create, update (?id=) and delete (?id=)."""

from linknow.services import properties
from linknow.utils.errors import ValidationFailed
from linknow.utils.http import JsonRequestHandler


class handler(JsonRequestHandler):

    def do_GET(self):
        self.dispatch(self._list)

    def do_POST(self):
        self.dispatch(self._create)

    def do_PATCH(self):
        self.dispatch(self._update)

    def do_DELETE(self):
        self.dispatch(self._delete)

    def _property_id(self) -> str:
        property_id = self.query_params().get("id")
        if not property_id:
            raise ValidationFailed("id", "Property id is required")
        return property_id

    async def _list(self):
        session = await self.session()
        listings = await properties.list_properties(session)
        return 200, [listing.model_dump(mode="json") for listing in listings]

    async def _create(self):
        body = self.read_json()
        session = await self.session()
        listing = await properties.create_property(session, body)
        return 201, listing.model_dump(mode="json")

    async def _update(self):
        property_id = self._property_id()
        body = self.read_json()
        session = await self.session()
        listing = await properties.update_property(session, property_id, body)
        return 200, listing.model_dump(mode="json")

    async def _delete(self):
        property_id = self._property_id()
        session = await self.session()
        await properties.delete_property(session, property_id)
        return 204, None
