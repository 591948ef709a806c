from enum import IntEnum


class ProtocolVersion(IntEnum):
    V1 = 1

    @classmethod
    def from_value(cls, value):
        try:
            return cls(int(value))
        except (TypeError, ValueError):
            raise ValueError(f"Unsupported x402 protocol version: {value}")


X402_VERSION = ProtocolVersion.V1
