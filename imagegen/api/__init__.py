"""imagegen adapter package.

Architectural role:
- Defines the external interaction boundary for the command line.
- Performs argument parsing, validation and interactive prompting.
- Delegates generation to `imagegen.image.service.generate`.
"""
