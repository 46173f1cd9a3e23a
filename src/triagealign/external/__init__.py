"""External tool wrappers (triagealign).

- Bowtie: colour-space fast pass
- Bfast: three-stage colour-space slow pass
- Samtools: view/sort/merge/index/calmd
"""

from triagealign.external.base import ExternalTool
from triagealign.external.bowtie import Bowtie
from triagealign.external.bfast import Bfast
from triagealign.external.samtools import Samtools

__all__ = [
    "ExternalTool",
    "Bowtie",
    "Bfast",
    "Samtools",
]
