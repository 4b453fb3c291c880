"""NFT bridge: commit-and-burn contract and validator secret service."""
