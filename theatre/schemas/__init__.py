"""
theatre.schemas
~~~~~~~~~~~~~~~
REST response models and room views. WebSocket event models live in ``theatre.schemas.events``.
"""
from theatre.schemas.api_response import ApiResponse
from theatre.schemas.rooms import (
    ParticipantView,
    Position,
    RoomCodeData,
    RoomInfoData,
    RoomJoinedData,
    RoomSnapshot,
    SeatView,
)

# ApiResponse uses postponed annotations; resolve them once the package is imported.
ApiResponse.model_rebuild()
