from urllib.parse import quote

from shared.helper.HelperConfig import HelperConfig
from shared.clients.index.IndexClientInterface import IndexClientInterface
from shared.models.config import EnvConfig

DATE_FORMAT = "strict_date_optional_time||epoch_millis"


class IndexClientElasticsearch(IndexClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("BASE_URL", default=None, val_type="string")
        self._api_key = self.get_config_val("API_KEY", default="", val_type="string")
        self._index_name = self.get_config_val("INDEX", default="search_documents", val_type="string")
        self._refresh = self.get_config_val("REFRESH", default="false", val_type="string")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Elasticsearch"

    def get_index_name(self) -> str:
        return self._index_name

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default=None),
            EnvConfig(env_key="API_KEY", val_type="string", default=""),
            EnvConfig(env_key="INDEX", val_type="string", default="search_documents"),
            EnvConfig(env_key="REFRESH", val_type="string", default="false"),
        ]

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        if self._api_key:
            return {"Authorization": f"ApiKey {self._api_key}"}
        return {}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        return "/_cluster/health"

    def _get_endpoint_index(self) -> str:
        return f"/{self._index_name}"

    def _get_endpoint_document(self, document_id: str) -> str:
        return f"/{self._index_name}/_doc/{quote(document_id, safe='')}"

    def _get_endpoint_search(self) -> str:
        return f"/{self._index_name}/_search"

    def _get_endpoint_count(self) -> str:
        return f"/{self._index_name}/_count"

    ##########################################
    ########### PAYLOAD BUILDER ##############
    ##########################################

    def get_create_index_payload(self) -> dict:
        keyword_subfield = {"keyword": {"type": "keyword", "ignore_above": 256}}
        return {
            "settings": {"number_of_shards": 1, "number_of_replicas": 0},
            "mappings": {
                "properties": {
                    "id": {"type": "keyword"},
                    "title": {"type": "text", "analyzer": "standard", "fields": keyword_subfield},
                    "content": {"type": "text", "analyzer": "standard"},
                    "category": {"type": "keyword", "ignore_above": 256},
                    "author": {"type": "text", "fields": keyword_subfield},
                    "createdAt": {"type": "date", "format": DATE_FORMAT},
                    "updatedAt": {"type": "date", "format": DATE_FORMAT},
                }
            },
        }

    def get_write_params(self) -> dict:
        return {"refresh": self._refresh}

    ##########################################
    ########### RESPONSE PARSER ##############
    ##########################################

    def extract_hits(self, raw_response: dict) -> list[dict]:
        hits = []
        for hit in raw_response.get("hits", {}).get("hits", []):
            hits.append({
                "id": hit.get("_id"),
                "score": hit.get("_score"),
                "source": hit.get("_source"),
                "highlight": hit.get("highlight") or {},
            })
        return hits

    def extract_count(self, raw_response: dict) -> int:
        return int(raw_response.get("count", 0))

    def extract_source(self, raw_response: dict) -> dict | None:
        if not raw_response.get("found", True):
            return None
        return raw_response.get("_source")
