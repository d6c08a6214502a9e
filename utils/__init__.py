# Utils package for Card Vault backend
