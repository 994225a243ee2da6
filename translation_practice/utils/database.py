from sqlalchemy import create_engine, text
from sqlalchemy.orm import sessionmaker, Session
import logging

from translation_practice.config.settings import settings

logger = logging.getLogger(__name__)

# SQLite 需要允许跨线程使用连接（评分在线程池中执行）
_connect_args = {"check_same_thread": False} if settings.DATABASE_URL.startswith("sqlite") else {}

# 创建数据库引擎
engine = create_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,  # 在DEBUG模式下输出SQL语句
    pool_pre_ping=True,
    pool_recycle=3600,
    connect_args=_connect_args,
)

# 创建SessionLocal类
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

def get_db():
    """获取数据库会话"""
    db = SessionLocal()
    try:
        yield db
    except Exception as e:
        logger.error(f"数据库会话错误: {e}")
        db.rollback()
        raise
    finally:
        db.close()


def get_db_session() -> Session:
    """
    直接获取数据库会话
    在服务层中使用
    """
    return SessionLocal()


def check_db_connection() -> bool:
    """检查数据库连接是否正常"""
    try:
        db = SessionLocal()
        db.execute(text("SELECT 1"))
        db.close()
        return True
    except Exception as e:
        logger.error(f"数据库连接检查失败: {e}")
        return False

def init_db():
    """初始化数据库表"""
    try:
        from translation_practice.models.base import Base
        from translation_practice.models.exercise import Exercise
        from translation_practice.models.review_record import ReviewRecordModel
        from translation_practice.models.exercise_attempt import ExerciseAttemptModel
        from translation_practice.models.practice_progress import PracticeProgress

        # 创建所有表
        Base.metadata.create_all(bind=engine)
        logger.info("数据库表初始化完成")

        init_base_exercises()

    except Exception as e:
        logger.error(f"数据库初始化失败: {e}")
        raise


def init_base_exercises():
    """初始化基础练习数据"""
    from translation_practice.repositories.exercise_repository import ExerciseRepository

    logger.info("开始初始化基础练习数据")

    base_exercises = [
        {
            "exercise_id": "daily-morning",
            "title": "我的早晨",
            "source_text": "我每天早上六点起床。我先喝一杯水，然后去公园跑步。跑完步以后，我和家人一起吃早饭。",
            "level": "beginner",
            "category": "daily-life",
            "description": "日常作息，一般现在时",
        },
        {
            "exercise_id": "weekend-trip",
            "title": "周末旅行",
            "source_text": "上周末我们去了海边。天气非常好，海水也很干净。我们在沙滩上待了一整个下午！你去过那里吗？",
            "level": "intermediate",
            "category": "travel",
            "description": "旅行经历，一般过去时",
        },
        {
            "exercise_id": "remote-work",
            "title": "远程办公",
            "source_text": "越来越多的公司允许员工在家工作。这种方式节省了通勤时间，但也让同事之间的沟通变得更加困难。管理者需要找到新的方法来保持团队的凝聚力。",
            "level": "advanced",
            "category": "business",
            "description": "观点表达，复合句",
        },
    ]

    db = SessionLocal()

    try:
        exercise_repo = ExerciseRepository(db)

        for exercise_data in base_exercises:
            if not exercise_repo.get_by_exercise_id(exercise_data["exercise_id"]):
                exercise_repo.create(**exercise_data)
                logger.info(f"初始化练习 {exercise_data['exercise_id']}")

        db.commit()
    except Exception as e:
        db.rollback()
        logger.error(f"初始化练习数据失败: {e}")
        raise
    finally:
        db.close()
