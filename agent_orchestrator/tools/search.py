"""
SearXNG Web Search Tool

Provides web search capabilities via a SearXNG instance.
"""

import logging
from typing import Optional

import requests

from ..config import config
from .registry import ToolDefinition

logger = logging.getLogger(__name__)

INPUT_SCHEMA: dict = {
    "type": "object",
    "properties": {
        "query": {"type": "string", "description": "search query"},
        "categories": {
            "type": "string",
            "description": "optional category (general, images, news)",
        },
        "num_results": {
            "type": "integer",
            "minimum": 1,
            "description": "max results to return (default 5)",
        },
    },
    "required": ["query"],
}


def _empty_response(query, error: str) -> dict:
    return {
        "success": False,
        "query": query,
        "error": error,
        "results": [],
        "total": 0,
    }


def search(
    query: str,
    categories: Optional[str] = None,
    num_results: int = 5,
) -> dict:
    """
    Search the web using SearXNG.

    Args:
        query: The search query
        categories: Optional category filter (e.g., "general", "images", "news")
        num_results: Maximum number of results to return

    Returns:
        Dictionary with search results
    """
    if not query or not query.strip():
        return _empty_response(
            query,
            'Search query is empty. Please provide a search query in format: {"query": "your search terms"}',
        )

    params = {"q": query, "format": "json"}
    if categories:
        params["categories"] = categories

    searxng = config.tools.searxng
    try:
        response = requests.get(searxng.url, params=params, timeout=searxng.timeout)
        response.raise_for_status()
        data = response.json()
    except requests.exceptions.RequestException as e:
        logger.error("Search failed: %s", e)
        return _empty_response(query, str(e))
    except ValueError as e:
        logger.error("Search returned invalid JSON: %s", e)
        return _empty_response(query, f"Invalid response from search service: {e}")

    results = [
        {
            "title": item.get("title", ""),
            "url": item.get("url", ""),
            "content": item.get("content", ""),
            "engine": item.get("engine", ""),
        }
        for item in data.get("results", [])[:num_results]
    ]

    return {
        "success": True,
        "query": query,
        "error": None,
        "results": results,
        "total": len(results),
    }


def format_results_for_llm(search_results: dict) -> str:
    """Format search results into a string suitable for LLM consumption."""
    if search_results.get("error"):
        return f"Search error: {search_results['error']}"

    if not search_results.get("results"):
        return "No results found."

    formatted = f"Search results for '{search_results['query']}':\n\n"
    for i, result in enumerate(search_results["results"], 1):
        formatted += f"{i}. {result['title']}\n"
        formatted += f"   URL: {result['url']}\n"
        if result["content"]:
            formatted += f"   {result['content'][:200]}...\n"
        formatted += "\n"

    return formatted


def _handle_search(params: dict) -> dict:
    return search(
        query=params.get("query", ""),
        categories=params.get("categories"),
        num_results=int(params.get("num_results", 5)),
    )


def build_tool() -> ToolDefinition:
    """Definition of the ``search`` tool."""
    return ToolDefinition(
        name="search",
        description="Search the web for current information",
        input_schema=INPUT_SCHEMA,
        handler=_handle_search,
        formatter=format_results_for_llm,
    )
