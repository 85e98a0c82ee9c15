"""Go workspace staging, target resolution and Built-Using provenance for Debian packaging."""
