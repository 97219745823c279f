"""Image upload: POST raw bytes with Content-Type and optional ?filename=."""

from linknow.services.object_storage import resolve_image_url, upload_image
from linknow.utils.http import JsonRequestHandler


class handler(JsonRequestHandler):

    def do_POST(self):
        self.dispatch(self._upload)

    async def _upload(self):
        data = self.read_body()
        content_type = (self.headers.get('Content-Type') or "").split(";")[0].strip()
        session = await self.session()
        reference = await upload_image(session, data, self.query_params().get("filename"), content_type)
        return 201, {"reference": reference, "url": await resolve_image_url(reference)}
