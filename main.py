import uvicorn

from lessonshop.main import build_app


if __name__ == "__main__":
    app = build_app()
    uvicorn.run(app, host=app.state.settings.host, port=app.state.settings.port)
