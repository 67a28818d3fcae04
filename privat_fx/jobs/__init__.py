"""Command-line jobs for :mod:`privat_fx`."""
