"""
PROMPTEDIT - Instruction-driven image editing

Components:
- rules.py: Normalizes instructions and holds the keyword rule table
- dispatcher.py: Resolves an instruction into an ordered operation plan
- executor.py: Applies an operation plan to image bytes with Pillow
- reporter.py: Packages edited bytes with applied-operation metadata
- editor.py: Validates requests and ties the pieces together
- history.py: Stores past edits and renders a before/after gallery
- serve.py: JSON HTTP API around the editor and history
"""

__version__ = '1.0.0'
