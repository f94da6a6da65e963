"""Cross-cutting helpers: errors, results, caching, retry and geometry."""
