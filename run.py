import uvicorn
from translation_practice.main import app

if __name__ == "__main__":
    uvicorn.run(
        "translation_practice.main:app",
        host="0.0.0.0",
        port=8000,
        reload=False,  # 开发模式
    )
