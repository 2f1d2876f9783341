"""Run options built once from the command line."""

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field


class NameMode(str, Enum):
    """Erlang distribution naming mode."""

    SHORTNAMES = "shortnames"
    LONGNAMES = "longnames"


class RemoteTarget(BaseModel):
    """A running node that receives hot-reloaded modules."""

    model_config = ConfigDict(frozen=True)

    naming: NameMode = Field(description="shortnames or longnames")
    local_node: str = Field(description="Name of the node erlcheck starts")
    remote_node: str = Field(description="Node the module is loaded into")
    cookie: str | None = Field(
        default=None,
        description="Cookie to use towards the remote node",
    )


class CopySpec(BaseModel):
    """Directory tree whose same-named BEAM files get overwritten."""

    model_config = ConfigDict(frozen=True)

    target_dir: Path = Field(description="Root of the directory tree to update")


class CheckOptions(BaseModel):
    """Options for one erlcheck run."""

    model_config = ConfigDict(frozen=True)

    verbose: bool = Field(default=False, description="Verbose output")
    outdir: Path | None = Field(
        default=None,
        description="Output directory for BEAM files, relative to the project root",
    )
    xref: bool = Field(default=False, description="Report calls to undefined functions")
    load: RemoteTarget | None = Field(
        default=None,
        description="Node to hot-reload compiled modules into",
    )
    copy_to: CopySpec | None = Field(
        default=None,
        description="Directory tree to replicate compiled modules into",
    )

    def disable_outdir_features(self) -> tuple["CheckOptions", list[str]]:
        """Turn off the features that need an output directory.

        xref, load and copy only work on a BEAM file written to disk.

        Returns:
            The adjusted options and the names of the features turned off.
        """
        if self.outdir is not None:
            return self, []

        disabled = [
            name
            for name, enabled in (
                ("xref", self.xref),
                ("load", self.load is not None),
                ("copy", self.copy_to is not None),
            )
            if enabled
        ]
        if not disabled:
            return self, []
        return self.model_copy(update={"xref": False, "load": None, "copy_to": None}), disabled
