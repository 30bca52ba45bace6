"""Platform attachment resolution for transmissions."""

from loguru import logger
from pydantic import BaseModel

from playcast.schemas import PlatformAttachment

from ...utils.rtmp_url import split_rtmp_url


class ResolvedDestination(BaseModel):
    attachment_id: str
    platform_code: str
    server: str
    application: str
    stream_key: str


class PlatformResolver:
    async def resolve(
        self, owner_id: str, attachment_ids: list[str]
    ) -> list[ResolvedDestination]:
        """Resolve attachment ids to push destinations.

        Unknown, inactive or foreign ids are dropped. Order follows the request
        and duplicate ids collapse to one destination.
        """
        requested = list(dict.fromkeys(attachment_ids))
        if not requested:
            return []

        found: dict[str, PlatformAttachment] = {}
        async for attachment in PlatformAttachment.find(
            PlatformAttachment.owner_id == owner_id,
            PlatformAttachment.active == True,  # noqa: E712
        ):
            found[attachment.attachment_id] = attachment

        destinations: list[ResolvedDestination] = []
        for attachment_id in requested:
            attachment = found.get(attachment_id)
            if not attachment:
                logger.debug(f"Dropping unknown or inactive attachment {attachment_id} for {owner_id}")
                continue

            server, application = split_rtmp_url(attachment.rtmp_url)
            destinations.append(
                ResolvedDestination(
                    attachment_id=attachment.attachment_id,
                    platform_code=attachment.platform_code,
                    server=server,
                    application=application,
                    stream_key=attachment.stream_key,
                )
            )
        return destinations
