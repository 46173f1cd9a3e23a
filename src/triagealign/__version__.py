"""Version information for triagealign."""

__version__ = "0.4.1"
__license__ = "GPL-2.0"
__description__ = "Two-pass colour-space read alignment: bowtie fast pass, BFAST rescue, samtools merge"
