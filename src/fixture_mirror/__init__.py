"""
Fixture Mirror - local mirrors of remote test fixtures.

Keeps local git mirrors of tracked repositories, serves their fixture
folders as JSON snapshots, and submits suggested tests back as GitHub pull
requests.
"""

__version__ = "1.0.0"
