"""
PC_Libs - Prompt Canvas Library Modules

This package contains core functionality for the Prompt Canvas project,
organized into specialized sub-packages:

- ImageEditingLib: Coordinate mapping, rendering, drag handling and the edit session
- ServicesLib: HTTP clients for generation, moderation and upload, plus the generation workflow
- GalleryStoreLib: Gallery persistence (local JSON store and database backends)
"""

__version__ = "0.1.0"
