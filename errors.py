class RelayError(Exception):
    """Base class for relay engine errors."""


class DuplicateParticipantError(RelayError):
    def __init__(self, connection_id: str):
        super().__init__(f"Participant already exists for connection {connection_id}")
        self.connection_id = connection_id
