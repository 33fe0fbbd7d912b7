"""vault-renewer Tests"""
