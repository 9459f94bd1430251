"""
Dune Client Class responsible for executing Dune Queries and fetching their results
Framework built on Dune's API Documentation
https://docs.dune.com/api-reference/overview/introduction
"""

from dune_sdk.api.extensions import ExtendedAPI


class DuneClient(ExtendedAPI):
    """
    An interface for Dune API with a few convenience methods
    combining the use of endpoints (e.g. run_query)

    Inheritance Hierarchy sketched as follows:

        DuneClient
        |
        |--- ExtendedAPI
                |   - Contains compositions of execution methods
                |               (things like `run_query`, `download_csv`, etc..)
                |
                |--- ExecutionAPI(Router)
                |        - Contains query execution and result methods.
                |
                |--- QueryAPI(Router)
                |       - Contains CRUD Operations on Queries
                |
                |--- TableAPI(Router)
                |       - Contains table creation and upload methods
                |
                |--- CustomAPI(Router)
                        - Contains custom endpoint results
    """
