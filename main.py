from dotenv import load_dotenv
load_dotenv()
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from helpers.tortoise_config import lifespan
from controllers.freedom_blocks_controller import freedom_router


app = FastAPI(lifespan=lifespan)


app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"], 
    allow_credentials=True,
    allow_methods=["*"],  
    allow_headers=["*"], 
)


app.include_router(freedom_router, prefix='/api', tags=['Freedom Blocks'])


@app.get('/')
def greetings():
    return {
        "Message": "Freedom blocks scheduler is running"
    }
