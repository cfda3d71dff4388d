"""AAAK: a short line-based notation for memories, with codec, parser and signals."""