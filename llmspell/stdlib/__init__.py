"""Script globals: json, log, storage, http, promises and async callbacks."""