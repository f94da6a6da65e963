"""Search backend access."""

from search.gateway import (
    ElasticsearchGateway,
    SearchGateway,
    SearchResponse,
    build_elasticsearch_gateway,
)

__all__ = [
    "ElasticsearchGateway",
    "SearchGateway",
    "SearchResponse",
    "build_elasticsearch_gateway",
]
