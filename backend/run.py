from acro import create_app, socketio
from acro.services.games.scheduler import start_delectus

app = create_app()

if __name__ == '__main__':
    # Dev server: run the orchestrator in-process next to the SocketIO server
    start_delectus(app)
    socketio.run(app, debug=True, use_reloader=False)
