import azure.functions as func

from tvbingefriend_watch_history.blueprints import watched_bp

app = func.FunctionApp()

app.register_blueprint(watched_bp)
