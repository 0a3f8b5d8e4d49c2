"""Shelfscan: shared normalization helpers"""
