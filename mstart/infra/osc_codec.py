from typing import Any, Sequence

from pythonosc import osc_message
from pythonosc.osc_bundle import OscBundle
from pythonosc.osc_message import OscMessage
from pythonosc.osc_message_builder import BuildError, OscMessageBuilder
from pythonosc.parsing import osc_types

from mstart.core.errors import BadDataType, MalformedBundle, MalformedMessage
from mstart.core.models.message import ArgType, Argument, Message
from mstart.core.ports.codec import Codec

_SUPPORTED_TAGS = frozenset(tag.value for tag in ArgType) | {"]"}
_MISSING = object()


class OscCodec(Codec):
    """
    OSC 1.1 implementation of the Codec interface, backed by python-osc.

    - one frame payload holds exactly one OSC message
    - bundles are not unpacked, they are reported as MalformedBundle
    - type tags outside ArgType are reported as BadDataType
    - strings that are not valid UTF-8 are reported as MalformedMessage
    """

    def encode(self, address: str, args: Sequence[Argument]) -> bytes:
        if not address.startswith("/"):
            raise ValueError(f"OSC address must start with '/': {address!r}")

        builder = OscMessageBuilder(address=address)
        for arg in args:
            # python-osc infers the nested tags of a list itself
            tag = None if arg.tag is ArgType.array else arg.tag.value
            builder.add_arg(arg.value, tag)

        try:
            return builder.build().dgram
        except BuildError as ex:
            raise ValueError(f"Unable to encode {address}: {ex}") from ex

    def decode(self, data: bytes) -> Message:
        payload = bytes(data)

        if OscBundle.dgram_is_bundle(payload):
            raise MalformedBundle(
                f"OSC bundle of {len(payload)} byte(s) received, "
                "only plain messages are supported"
            )
        if not OscMessage.dgram_is_message(payload):
            raise MalformedMessage("Payload is not an OSC message")

        try:
            tags_start, tags, args_start = self._split(payload)
        except (osc_types.ParseError, UnicodeDecodeError) as ex:
            raise MalformedMessage(f"Invalid OSC address or type tags: {ex}") from ex

        if unknown := set(tags) - _SUPPORTED_TAGS:
            raise BadDataType(f"Unsupported OSC type tag(s): {sorted(unknown)}")

        if ArgType.impulse in tags:
            # impulses carry no data, python-osc parses the message without them
            payload = (
                payload[:tags_start]
                + osc_types.write_string("," + tags.replace(ArgType.impulse, ""))
                + payload[args_start:]
            )

        try:
            message = OscMessage(payload)
        except (osc_message.ParseError, osc_types.ParseError, UnicodeDecodeError) as ex:
            raise MalformedMessage(f"Invalid OSC message: {ex}") from ex

        return Message(
            address=message.address,
            arguments=self._arguments(tags, list(message.params)),
        )

    @staticmethod
    def _split(payload: bytes) -> tuple[int, str, int]:
        """Offset of the type tag string, its tags, and offset of the first argument."""
        _, tags_start = osc_types.get_string(payload, 0)
        if tags_start >= len(payload):
            return tags_start, "", tags_start
        tags, args_start = osc_types.get_string(payload, tags_start)
        return tags_start, tags.removeprefix(","), args_start

    @staticmethod
    def _arguments(tags: str, params: list[Any]) -> tuple[Argument, ...]:
        # nested array tags belong to the list value of the outer "["
        arguments: list[Argument] = []
        values = iter(params)
        depth = 0
        for tag in tags:
            if tag == "]":
                depth -= 1
                continue
            if depth == 0:
                if tag == ArgType.impulse:
                    arguments.append(Argument(ArgType.impulse, None))
                else:
                    value = next(values, _MISSING)
                    if value is _MISSING:
                        raise MalformedMessage(
                            f"Type tags {tags!r} announce more than "
                            f"{len(params)} argument(s)"
                        )
                    arguments.append(Argument(ArgType(tag), value))
            if tag == "[":
                depth += 1

        if next(values, _MISSING) is not _MISSING:
            raise MalformedMessage(
                f"Type tags {tags!r} announce fewer than {len(params)} argument(s)"
            )

        return tuple(arguments)
