"""Configuration settings for the InsightFlow research agent."""

import logging
import os
from dotenv import load_dotenv

load_dotenv()

# Logging setup
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL),
    format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
    datefmt="%H:%M:%S",
)

# Gemini (self-grounding via Google Search)
GEMINI_API_KEY = os.getenv("GEMINI_API_KEY") or os.getenv("API_KEY")
GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
GEMINI_DEFAULT_MODEL = os.getenv("GEMINI_MODEL", "gemini-3-pro-preview")

# MiniMax (OpenAI-compatible chat completions, needs a group id)
MINIMAX_BASE_URL = os.getenv("MINIMAX_BASE_URL", "https://api.minimax.chat/v1")
MINIMAX_DEFAULT_MODEL = os.getenv("MINIMAX_MODEL", "MiniMax-M2.5")
MINIMAX_MAX_TOKENS = 4096

# Ollama (local server)
OLLAMA_BASE_URL = os.getenv("OLLAMA_BASE_URL", "http://localhost:11434")
OLLAMA_DEFAULT_MODEL = os.getenv("OLLAMA_MODEL", "llama3.2")

# Tavily web search (used by MiniMax and Ollama)
TAVILY_API_KEY = os.getenv("TAVILY_API_KEY")
TAVILY_SEARCH_URL = "https://api.tavily.com/search"

# Research step settings
SEARCH_MAX_RESULTS = 5
SEARCH_EXCERPT_CHARS = 500

# HTTP settings
REQUEST_TIMEOUT = float(os.getenv("REQUEST_TIMEOUT", "120.0"))
