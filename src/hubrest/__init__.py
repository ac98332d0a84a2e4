"""hubrest.

Client library for authenticated calls to paginated JSON REST APIs such
as GitHub's, with typed errors and transparent pagination.
"""

__version__ = "0.1.0"
