"""Write backends and the dispatcher that runs them."""
