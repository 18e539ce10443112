"""
Compiled render command.

A Command is derived fresh per render request and never mutated.
"""

from typing import Dict, List, Optional, Tuple
from pydantic import BaseModel, ConfigDict, Field


# Fixed logical names inside the engine workspace
INPUT_NAME = "input.mp4"
OUTPUT_NAME = "output.mp4"
CAPTION_FILE_NAME = "subtitles.srt"

FILTER_SEPARATOR = ","


class Command(BaseModel):
    """
    Immutable engine invocation.

    filter_stages: ordered filter expressions (may be empty)
    trim_args: seek/duration tokens
    codec_args: audio flags and codec/quality tokens
    auxiliary_files: virtual filename -> bytes, staged before invocation
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    filter_stages: Tuple[str, ...] = ()
    trim_args: Tuple[str, ...] = ()
    codec_args: Tuple[str, ...] = ()
    auxiliary_files: Dict[str, bytes] = Field(default_factory=dict)

    input_name: str = INPUT_NAME
    output_name: str = OUTPUT_NAME

    @property
    def encoder_args(self) -> Tuple[str, ...]:
        """Trim, audio and codec tokens in emission order."""
        return self.trim_args + self.codec_args

    @property
    def filter_graph(self) -> Optional[str]:
        """
        Joined filter-graph expression.

        None when there are no stages. An empty string is never produced
        because the engine rejects an empty filter expression.
        """
        if not self.filter_stages:
            return None
        return FILTER_SEPARATOR.join(self.filter_stages)

    def argv(self) -> List[str]:
        """
        Flat argument vector for the engine's execute call.

        Layout: -i input [trim] [-vf graph] [audio flags] codecs output
        """
        args: List[str] = ["-i", self.input_name]
        args.extend(self.trim_args)

        graph = self.filter_graph
        if graph is not None:
            args.extend(["-vf", graph])

        args.extend(self.codec_args)
        args.append(self.output_name)
        return args

    def staged_names(self) -> List[str]:
        """Every workspace name a run of this command touches."""
        return [self.input_name, *self.auxiliary_files.keys(), self.output_name]

    def command_line(self) -> str:
        """Printable command line for audit logs."""
        return " ".join(self.argv())
