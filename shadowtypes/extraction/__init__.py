"""Declaration sources and the extractor that runs them."""
