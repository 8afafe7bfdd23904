"""AutoVerify core package.

The package is organized into focused modules:

- **submission**: Fetching a submission's movie and metadata from TASVideos
- **movies**: Movie format registry and the libTAS ``.ltm`` inspector
- **resolver**: Mapping movie metadata to libTAS and Ruffle revision tags
- **provisioning**: Building both tools from source, concurrently
- **replay**: Assembling and running the libTAS replay command
- **pipeline**: Sequencing the steps above for one submission
- **tempfiles**: Scoped temporary files for movies and ROMs

The main entry point is the ``VerificationPipeline`` class.
"""

from .errors import AutoVerifyError
from .pipeline import VerificationPipeline, VerificationResult
from .version import __version__

__all__ = [
    "__version__",
    "AutoVerifyError",
    "VerificationPipeline",
    "VerificationResult",
]
