from pydantic import BaseModel, Field


class DeviceToken(BaseModel):
    """
    A registered push endpoint for one app installation.
    """

    user_id: str = Field(..., description="Owning user UUID")
    device_token: str = Field(..., description="Opaque APNs device token")
    device_type: str = Field("ios", description="Platform tag")
