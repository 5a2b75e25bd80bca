# Simple local runner. Deployments can also start with:
#   uvicorn transcoder.main:app --host 0.0.0.0 --port 3001
from transcoder.main import app, settings

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=settings.port)
