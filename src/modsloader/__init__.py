"""mods-loader: keeps a versioned catalog of game mod artifacts in sync with their upstream releases."""
