"""Typed LOCO documents for the booking and ticket services."""

from typing import Any

from bson.int64 import Int64
from pydantic import BaseModel, ConfigDict, Field


class Document(BaseModel):
    """Base for LOCO documents: wire names are aliases, unknown fields are ignored."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


# ----------------------------------------------------------------------------
# Booking (GETCONF)
# ----------------------------------------------------------------------------


class BookingRequest(Document):
    """GETCONF request body."""

    model: str = ""
    os: str = ""
    mccmnc: str = Field("", alias="MCCMNC")


class ConnectionInfo(Document):
    """Per network type connection tuning returned by GETCONF."""

    background_keep_interval: int = Field(..., alias="bgKeepItv")
    background_reconnect_interval: int = Field(..., alias="bgReconnItv")
    background_interval: int = Field(..., alias="bgPingItv")
    ping_interval: int = Field(..., alias="fgPingItv")
    request_timeout: int = Field(..., alias="reqTimeout")
    encrypt_type: int = Field(..., alias="encType")
    connection_timeout: int = Field(..., alias="connTimeout")
    receive_header_timeout: int = Field(..., alias="recvHeaderTimeout")
    in_seg_timeout: int = Field(..., alias="inSegTimeout")
    out_seg_timeout: int = Field(..., alias="outSegTimeout")
    block_send_buffer_size: int = Field(..., alias="blockSendBufSize")
    ports: list[int]


class HostInfo(Document):
    """Ticket server host lists."""

    ssl: list[str]
    v2sl: list[str]
    lsl: list[str]
    lsl6: list[str]


class Trailer(Document):
    """Media upload/download limits."""

    token_expire_time: int = Field(..., alias="tokenExpireTime")
    resolution: int
    resolution_hd: int = Field(..., alias="resolutionHD")
    compress_ratio: int = Field(..., alias="compRatio")
    compress_ratio_hd: int = Field(..., alias="compRatioHD")
    down_mode: int = Field(..., alias="downMode")
    concurrent_down_limit: int = Field(..., alias="concurrentDownLimit")
    concurrent_up_limit: int = Field(..., alias="concurrentUpLimit")
    max_relay_size: int = Field(..., alias="maxRelaySize")
    down_check_size: int = Field(..., alias="downCheckSize")
    up_max_size: int = Field(..., alias="upMaxSize")
    video_up_max_size: int = Field(..., alias="videoUpMaxSize")
    video_codec: int = Field(..., alias="vCodec")
    video_fps: int = Field(..., alias="vFps")
    audio_codec: int = Field(..., alias="aCodec")
    content_expire_time: int = Field(..., alias="contentExpireTime")
    video_resolution: int = Field(..., alias="vResolution")
    video_bitrate: int = Field(..., alias="vBitrate")
    audio_frequency: int = Field(..., alias="aFrequency")


class TrailerHigh(Document):
    """High quality media limits."""

    video_resolution: int = Field(..., alias="vResolution")
    video_bitrate: int = Field(..., alias="vBitrate")
    audio_frequency: int = Field(..., alias="aFrequency")


class GetConfResponse(Document):
    """GETCONF response body."""

    revision: int
    cellular: ConnectionInfo = Field(..., alias="3g")
    wifi: ConnectionInfo
    ticket: HostInfo
    trailer: Trailer
    trailer_high: TrailerHigh = Field(..., alias="trailer.h")


# ----------------------------------------------------------------------------
# Ticket (CHECKIN)
# ----------------------------------------------------------------------------


class CheckinRequest(Document):
    """CHECKIN request body."""

    user_id: int = Field(..., alias="userId")
    os: str = "android"
    ntype: int = 0
    app_version: str = Field("9.7.2", alias="appVer")
    lang: str = "ko"
    mccmnc: str = Field("45005", alias="MCCMNC")

    def model_dump(self, **kwargs: Any) -> dict[str, Any]:
        """Convert to dictionary with userId as a BSON int64."""
        data: dict = super().model_dump(**kwargs)

        # userId is always an int64 on the wire, even for small values
        key = "userId" if kwargs.get("by_alias") else "user_id"
        if key in data:
            data[key] = Int64(data[key])
        return data


class CheckinResponse(Document):
    """CHECKIN response body: the chat server to talk to next."""

    cache_expire: int = Field(..., alias="cacheExpire")
    cshost: str
    cshost6: str
    csport: int
    host: str
    host6: str
    port: int
    status: int
    vsshost: str
    vsshost6: str
    vssport: int
