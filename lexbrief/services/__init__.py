"""Business services: embedding gateway, similarity ranking, knowledge composition."""
