"""School event photo sharing: share-token access control and scope resolution."""
