import os
from clonepoints import create_app

app = create_app()

if __name__ == '__main__':
    # '0.0.0.0' makes the server reachable from the network
    app.run(host='0.0.0.0', port=int(os.getenv('PORT', '5000')))
