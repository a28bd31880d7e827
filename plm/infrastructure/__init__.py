"""Infrastructure: persistence, messaging and external adapters."""
