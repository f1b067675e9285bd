"""
pdf-page-summarizer — REST microservice summarizing uploaded PDFs page by page.

Splits a PDF into pages (pypdf or docling), asks a locally hosted LLM (LM
Studio, Ollama or any OpenAI-compatible server) to summarize each page, then
asks it once more to combine the page summaries into one document summary.
"""

__version__ = "0.1.0"
