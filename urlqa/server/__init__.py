"""HTTP server exposing the knowledge base and chat"""
