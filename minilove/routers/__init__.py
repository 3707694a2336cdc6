"""HTTP routers mounted under the API prefix by `minilove.api.router`."""
