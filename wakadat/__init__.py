"""Reader and extractor for ACV1 .dat game archives: CRC-64 lookup keys, entry decoding and a command-line extractor."""

__version__ = "0.1.0"