"""Runtime configuration: SPARQL endpoint, dataset base URI and namespaces."""

import os
from collections.abc import Mapping

from pydantic import BaseModel

ENV_PREFIX = "TRESTLE_"

DEFAULT_SPARQL_ENDPOINT = "https://fuseki.hyperdata.it/farelo"
DEFAULT_BASE_URI = "http://hyperdata.it/trestle/"
DEFAULT_DC_NAMESPACE = "http://purl.org/dc/terms/"
DEFAULT_TS_NAMESPACE = "http://purl.org/stuff/trestle/"


class TrestleConfig(BaseModel):
    sparql_endpoint: str = DEFAULT_SPARQL_ENDPOINT
    base_uri: str = DEFAULT_BASE_URI  # node URIs are {base_uri}{node_id}
    dc_namespace: str = DEFAULT_DC_NAMESPACE
    ts_namespace: str = DEFAULT_TS_NAMESPACE
    http_timeout: float = 30.0

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "TrestleConfig":
        """Build a config from TRESTLE_* variables, falling back to defaults.

        e.g. TRESTLE_SPARQL_ENDPOINT, TRESTLE_BASE_URI, TRESTLE_HTTP_TIMEOUT.
        """
        env = os.environ if environ is None else environ
        values = {}
        for field_name in cls.model_fields:
            key = f"{ENV_PREFIX}{field_name.upper()}"
            if env.get(key):
                values[field_name] = env[key]
        return cls.model_validate(values)
