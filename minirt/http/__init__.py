"""HTTP client support: requests, responses, bodies, headers, methods, status codes and errors."""