"""AI bio generation: POST {"name", "location"?, "agentType"?}."""

from linknow.services.ai_writer import generate_bio
from linknow.utils.http import JsonRequestHandler


class handler(JsonRequestHandler):

    def do_POST(self):
        self.dispatch(self._generate)

    async def _generate(self):
        body = self.read_json()
        bio = await generate_bio(
            body.get("name") or "",
            body.get("location"),
            body.get("agentType") or body.get("agent_type"),
        )
        return 200, {"bio": bio}
