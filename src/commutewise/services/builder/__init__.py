"""Route builder: editing state, point resolution, live preview and save."""
