"""Status code and response header overrides requested by the client."""

from dataclasses import dataclass

from peer_server.domain.correlation_id import component_logger
from peer_server.domain.errors import MalformedParameter
from peer_server.domain.http_types import HttpResponse, is_valid_header_name
from peer_server.domain.params import parse_int

OVERRIDES_LOGGER = component_logger("simulation.overrides")

# 1xx codes are interim responses and cannot end an exchange.
MIN_STATUS = 200
MAX_STATUS = 999

# Message framing is owned by the response writer.
FRAMING_HEADERS = frozenset({"content-length", "transfer-encoding"})


@dataclass(frozen=True)
class StatusOverride:
    code: int

    @classmethod
    def parse(cls, raw: str) -> "StatusOverride":
        code = parse_int("status", raw)
        if not MIN_STATUS <= code <= MAX_STATUS:
            raise MalformedParameter(
                "status", raw, f"expected a code between {MIN_STATUS} and {MAX_STATUS}"
            )
        return cls(code)


@dataclass(frozen=True)
class HeaderSet:
    """Headers to set on the response, paired positionally."""

    pairs: tuple[tuple[str, str], ...]

    @classmethod
    def parse(cls, names_raw: str, values_raw: str) -> "HeaderSet":
        """Pair the comma-separated ``name`` and ``value`` lists by position.

        Every name needs a value; surplus values are ignored.
        """
        names = names_raw.split(",")
        values = values_raw.split(",")
        if len(values) < len(names):
            raise MalformedParameter(
                "value",
                values_raw,
                f"{len(names)} header names but only {len(values)} values",
            )
        return cls(tuple(zip(names, values)))

    def apply(self, response: HttpResponse) -> list[str]:
        """Set each header on ``response`` and return the names actually set.

        Names that are not valid header tokens, including the empty name, are
        skipped, as are the framing headers. Line breaks inside values are
        replaced with spaces.
        """
        applied = []
        for name, value in self.pairs:
            if not is_valid_header_name(name) or name.lower() in FRAMING_HEADERS:
                OVERRIDES_LOGGER.info(
                    "Skipping header the response cannot carry",
                    extra={"event": "header_skipped", "header": name},
                )
                continue
            clean_value = value.replace("\r", " ").replace("\n", " ")
            response.set_header(name, clean_value)
            applied.append(name)
        return applied
