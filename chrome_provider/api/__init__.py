"""HTTP surface of the Chrome provider."""
