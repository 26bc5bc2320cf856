"""
Texture export module for SWF movies.

This module finds texture classes declared in the ActionScript 3 bytecode of an
SWF document, links them to their library symbols and renders each one to an
isolated PNG image through a pluggable render backend.
"""
