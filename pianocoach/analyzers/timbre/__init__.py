"""Mel-cepstral timbre descriptors."""
